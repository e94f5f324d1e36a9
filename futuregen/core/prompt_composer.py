"""Instruction text for the analysis and editing calls.

Both per-mode tables are plain mappings so the wording sent to the remote
models can be read and tested in one place. Custom-mode entries carry a
``{feature}`` slot.
"""

from typing import Any, Dict, List, Optional

from ..models.enums import ReferenceMode
from ..models.schemas import CompressedImage
from ..providers.gemini import inline_image_part, text_part

DEFAULT_FEATURE_NAME = "feature"

ANALYSIS_INSTRUCTIONS: Dict[ReferenceMode, str] = {
    ReferenceMode.POSE: (
        "Analyze the image and describe the body pose. Focus on the position of "
        "arms, legs, head tilt, and spine curvature. Describe it in a way that an "
        "artist could use to pose a model."
    ),
    ReferenceMode.DRESS: (
        "Analyze the clothing in this image. Provide an EXTREMELY DETAILED technical "
        "description of the outfit, including specific materials, cuts, textures, "
        "patterns, and how it drapes. Ignore the person, focus on the clothes."
    ),
    ReferenceMode.EXPRESSION: (
        "Describe the facial expression and emotion shown in this image. What is the mood?"
    ),
    ReferenceMode.STYLE: "Describe the art style, lighting, and medium of this image.",
    ReferenceMode.BACKGROUND: (
        "Describe the setting, background elements, and lighting environment of this scene."
    ),
    ReferenceMode.COMPOSITION: (
        "Describe the camera angle, framing, and composition of this shot."
    ),
    ReferenceMode.CUSTOM: (
        'Analyze the image and provide a detailed description of the following '
        'feature: "{feature}". Describe it specifically so it can be visually replicated.'
    ),
}

GENERIC_CUSTOM_ANALYSIS = "Describe the key distinctive visual attributes of this image."

TRANSFER_DIRECTIVES: Dict[ReferenceMode, str] = {
    ReferenceMode.POSE: (
        "\nMODE: POSE MATCHING\n"
        "1. The character MUST adopt the EXACT pose of the Reference Image.\n"
        "2. ALIGNMENT: Match limb angles, head tilt, and spine curvature to the reference.\n"
        "3. REFERENCE TRUTH: The Reference Image is the ground truth for the pose. "
        "Follow it strictly.\n"
    ),
    ReferenceMode.DRESS: (
        "\nMODE: OUTFIT TRANSFER\n"
        "1. TARGET: Create an EXACT DIGITAL REPLICA of the outfit from the Reference "
        "Image on the Source Character.\n"
        "2. DETAILS: Match the fabric texture, gloss, material weight, seams, buttons, "
        "and accessories pixel-for-pixel where possible.\n"
        "3. FIT: Draping must follow the source character's body naturally but "
        "strictly adhere to the reference design.\n"
    ),
    ReferenceMode.EXPRESSION: (
        "\nMODE: EXPRESSION MATCHING\n"
        "1. Adjust the Source Character's facial expression to match the emotion of "
        "the Reference Image.\n"
    ),
    ReferenceMode.STYLE: (
        "\nMODE: STYLE TRANSFER\n"
        "1. Re-render the Source Character using the artistic style and medium of the "
        "Reference Image.\n"
    ),
    ReferenceMode.BACKGROUND: (
        "\nMODE: BACKGROUND TRANSFER\n"
        "1. Place the Source Character into a setting that matches the Reference "
        "Image's background.\n"
    ),
    ReferenceMode.COMPOSITION: (
        "\nMODE: COMPOSITION MATCHING\n"
        "1. Frame the Source Character similarly to the Reference Image (camera angle, "
        "framing).\n"
    ),
    ReferenceMode.CUSTOM: (
        "\nMODE: CUSTOM TRANSFER ({feature})\n"
        "1. Transfer the {feature} from the Reference Image to the Source Character.\n"
        "2. Blend the {feature} naturally with the Source Character while preserving "
        "their identity.\n"
    ),
}

SINGLE_IMAGE_HEADER = (
    "I have provided ONE image. It is the Source Image.\n"
    "TASK: Edit this image based on the user instructions. PRESERVE IDENTITY.\n"
)

DUAL_IMAGE_HEADER = (
    "I have provided TWO images above.\n"
    "- First Image: Source Character (The person to be modified).\n"
    "- Second Image: Reference Style/Attribute.\n\n"
    "TASK: Create a high-quality NEW image of the Source Character that adopts the "
    "specific attribute from the Reference Image.\n"
    "IMPORTANT: Maintain the facial identity and physical likeness of the Source "
    "Character.\n"
)


def resolve_feature_name(custom_prompt: Optional[str]) -> str:
    """Custom feature text, or a generic noun when none was given."""
    if custom_prompt and custom_prompt.strip():
        return custom_prompt.strip()
    return DEFAULT_FEATURE_NAME


def analysis_instruction(mode: ReferenceMode, custom_prompt: Optional[str] = None) -> str:
    """Question asked of the analysis model for a reference image."""
    mode = ReferenceMode(mode)
    if mode is ReferenceMode.CUSTOM:
        if not (custom_prompt and custom_prompt.strip()):
            return GENERIC_CUSTOM_ANALYSIS
        return ANALYSIS_INSTRUCTIONS[mode].format(feature=custom_prompt.strip())
    return ANALYSIS_INSTRUCTIONS[mode]


def transfer_directive(mode: ReferenceMode, custom_prompt: Optional[str] = None) -> str:
    """Mode section of the dual-image editing instruction."""
    mode = ReferenceMode(mode)
    return TRANSFER_DIRECTIVES[mode].format(feature=resolve_feature_name(custom_prompt))


def compose_instruction(
    prompt: str,
    has_reference: bool,
    reference_mode: Optional[ReferenceMode] = None,
    custom_prompt: Optional[str] = None,
    guidance: str = "",
) -> str:
    """
    Build the text part sent after the image parts.

    Args:
        prompt: Raw user prompt, appended when not blank
        has_reference: Whether a reference image precedes the text
        reference_mode: Transfer mode, only used with a reference image
        custom_prompt: Feature name for custom mode
        guidance: Extracted reference description, quoted when present

    Returns:
        Instruction text
    """
    if has_reference:
        instruction = DUAL_IMAGE_HEADER

        if guidance:
            instruction += (
                f'\nVISUAL DESCRIPTION OF REFERENCE (for guidance): "{guidance}"\n\n'
            )

        if reference_mode is not None:
            instruction += transfer_directive(reference_mode, custom_prompt)
    else:
        instruction = SINGLE_IMAGE_HEADER

    if prompt and prompt.strip():
        instruction += f'\nUSER INSTRUCTIONS: "{prompt}"\n'

    return instruction


def build_parts(
    source: CompressedImage,
    reference: Optional[CompressedImage],
    instruction: str,
) -> List[Dict[str, Any]]:
    """Request parts in the fixed order: source, reference (if any), text."""
    parts = [inline_image_part(source)]
    if reference is not None:
        parts.append(inline_image_part(reference))
    parts.append(text_part(instruction))
    return parts


def format_guidance_snippet(
    mode: ReferenceMode,
    description: str,
    custom_prompt: Optional[str] = None,
) -> str:
    """Label an extracted description so it can be pasted into a prompt."""
    mode = ReferenceMode(mode)
    if mode is ReferenceMode.CUSTOM:
        prefix = f"Custom ({resolve_feature_name(custom_prompt)}):"
    else:
        prefix = f"{mode.value}:"
    return f"{prefix} {description.strip()}"


def append_to_prompt(prompt: str, snippet: str) -> str:
    if prompt:
        return f"{prompt}\n\n{snippet}"
    return snippet
