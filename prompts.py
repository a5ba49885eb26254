# prompts.py
"""
Prompt templates, one pure function per operation.

Every builder returns a `Prompt`: the instruction text plus the images to send
after it, in the order the text refers to them. Each attachment carries the
label the text uses for it ("Character Reference 2", "Previous Page Image"),
so the wording and the part order cannot drift apart.
"""
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import image_codec
from errors import MissingCharacterSheet
from models import Character, ColorMode, LayoutPage, Page, aspect_ratio_profile

WORLDVIEW = "worldview"
STORY_SUGGESTION = "story_suggestion"
LAYOUT_PROPOSAL = "layout_proposal"
CHARACTER_SHEET = "character_sheet"
CHARACTER_FROM_REFERENCE = "character_from_reference"
EDIT_CHARACTER_SHEET = "edit_character_sheet"
MANGA_PAGE = "manga_page"
COLORIZE_PAGE = "colorize_page"
EDIT_PAGE = "edit_page"
ANALYSIS = "analysis"


class Attachment(NamedTuple):
    label: str
    media_type: str
    data: bytes


class Prompt(NamedTuple):
    kind: str
    text: str
    attachments: Tuple[Attachment, ...] = ()

    @property
    def labels(self) -> List[str]:
        return [a.label for a in self.attachments]


def attach(label: str, image: str) -> Attachment:
    media_type, data = image_codec.decode(image)
    return Attachment(label, media_type, data)


def color_style(color_mode: ColorMode) -> str:
    return "black and white (monochrome)" if color_mode == "monochrome" else "full color"


def character_profiles(characters: Sequence[Character]) -> str:
    return "\n".join(f"- **{c.name}:** {c.description or 'No description provided.'}" for c in characters)


def _sheet(c: Character, operation: str) -> str:
    if not c.sheetImage:
        raise MissingCharacterSheet(c.name, operation)
    return c.sheetImage


SIX_POSE_LAYOUT = """The character sheet must include exactly six poses, arranged in two rows:
    - **Top Row (Headshots):** Three headshots showing different views and expressions (e.g., side view, front view neutral expression, front view smiling).
    - **Bottom Row (Full Body):** Three full-body views (front, side, and back)."""

SHEET_ONLY_OUTPUT = "Generate ONLY the final character sheet as a single image. Do NOT include any text, labels, names, descriptions, or explanations in your response. The output must be the image and nothing else."


# ------------------ WORLDBUILDING -----------------


def build_worldview_prompt(characters: Sequence[Character]) -> Prompt:
    text = f"""You are a creative world-builder and storyteller. Based on the following list of characters, create a compelling and imaginative worldview or setting for a manga.

**Characters:**
{character_profiles(characters) if characters else "- No characters have been defined yet. Invent the setting freely."}

**Your Task:**
- Invent a unique setting (e.g., fantasy kingdom, sci-fi city, modern-day high school with a twist).
- Briefly describe the key rules, conflicts, or mysteries of this world.
- Explain how these characters might fit into or relate to this world.
- The tone should be creative and inspiring for a manga artist.
- Provide the response as a single block of text.
"""
    return Prompt(WORLDVIEW, text)


def build_story_suggestion_prompt(premise: str, worldview: str, characters: Sequence[Character],
                                  previous_pages: Optional[Sequence[Page]] = None) -> Prompt:
    text = "You are a creative manga scriptwriter. A user wants help writing a script for a single manga page."

    if worldview:
        text += f"\n\n**IMPORTANT WORLDVIEW CONTEXT:**\n{worldview}\n\nThis worldview is the foundational truth of the story. Ensure your suggestions are consistent with these rules."

    if characters:
        text += f"\n\n**CHARACTER PROFILES:**\n{character_profiles(characters)}\n"
        text += "Incorporate these character traits into their actions and dialogue."

    # Pages without both an image and a script say nothing useful; they are
    # skipped and the rest are numbered as they are attached.
    complete = [p for p in previous_pages or [] if p.is_complete]
    attachments = []
    if complete:
        text += "\n\n**PREVIOUS PAGE CONTEXT:**\nThis new page must be a direct continuation of the previous pages. Here is the context from the immediately preceding pages, in chronological order:"
        for n, page in enumerate(complete, start=1):
            label = f"Previous Page {n}"
            text += f"\n\n**[{label}]**\n*Script:* {page.sceneDescription}\n*Image:* [Image {n} is attached]"
            attachments.append(attach(label, page.generatedImage))

    if premise:
        text += f"\n\n**USER'S PREMISE FOR THE NEW PAGE:**\n\"{premise}\""
        text += "\n\n**YOUR TASK:**\nBased on all the context provided (worldview, characters, previous pages, user's premise), generate a detailed script for this new manga page."
    else:
        text += "\n\n**YOUR TASK:**\nThe user has not provided a specific premise. Based on the worldview, characters, and the context from previous pages, propose a logical and interesting next page for the story. Generate a detailed script for this new manga page."

    text += " Break down the story into 2-4 panels. For each panel, provide a concise description of the action/shot and any character dialogue. Panels can describe environments, objects, or close-ups without characters if it serves the story. **IMPORTANT: All dialogue MUST be in English.**"
    return Prompt(STORY_SUGGESTION, text, tuple(attachments))


# ------------------ LAYOUT ------------------------


def build_layout_prompt(story: str, characters: Sequence[Character], aspect_ratio_key: str,
                        previous_page: Optional[LayoutPage] = None,
                        current_canvas: Optional[str] = None) -> Prompt:
    profile = aspect_ratio_profile(aspect_ratio_key)
    has_characters = len(characters) > 0
    sheets = [_sheet(c, "a layout proposal") for c in characters]

    has_previous = bool(previous_page and previous_page.proposalImage)

    attachments = []
    if current_canvas:
        attachments.append(attach("Canvas Image", current_canvas))
    if has_previous:
        attachments.append(attach("Previous Page Image", previous_page.proposalImage))
    for i, (c, sheet) in enumerate(zip(characters, sheets), start=1):
        attachments.append(attach(f"Character Sheet {i}: {c.name}", sheet))

    inputs = [
        "**Story:** A short narrative for the manga page.",
        "**Canvas Image:** This is the user's canvas. It may be blank or contain existing drawings. This is your drawing surface."
        if current_canvas else
        "**Canvas Image:** No canvas image is provided. Treat the page as a blank canvas.",
        "**Character Sheets:** " + (
            "Reference sheets for characters are provided, in this order: "
            + ", ".join(c.name for c in characters) + "."
            if has_characters else "No character sheets provided."),
    ]
    if has_previous:
        inputs.append("**Previous Page Image:** An image of the preceding page for context.")
    inputs_text = "\n".join(f"{n}.  {line}" for n, line in enumerate(inputs, start=1))

    canvas_rule = (
        "The provided \"Canvas Image\" is your drawing surface. If it contains existing user drawings, you MUST incorporate them into your layout. Propose new panels and elements that complement or complete the user's work. If it is a blank canvas, create a new layout from scratch."
        if current_canvas else
        "No canvas image is provided. Create a new layout from scratch on a blank page of the requested aspect ratio.")

    posing = ("Place the characters (using their reference sheets for appearance) inside the panels."
              if has_characters else "Sketch generic characters inside the panels based on the story.")

    text = f"""You are an expert manga storyboard artist. Your task is to create a visual guide for a user by generating a single, rough, grayscale sketch of a manga page.

**Core Objective:**
Your primary goal is to create a DYNAMIC and VISUALLY INTERESTING panel layout that reflects professional manga storyboarding techniques. The panels should guide the reader's eye and control the pacing of the story.

**Inputs Provided:**
{inputs_text}

**CRITICAL INSTRUCTIONS for the SKETCH:**
1.  **Dimensions & Aspect Ratio:** The output sketch MUST fill the entire canvas and have an exact aspect ratio of {profile.ratio}. Do not leave any empty margins or padding. The image should be sized appropriately for a canvas of {profile.width}px width and {profile.height}px height.
2.  **Creative Panel Layout:** AVOID simple, boring grid layouts. Use professional techniques:
    - **Dynamic Angles:** Use diagonally cut panels for action or unease.
    - **Overlapping & Inset Panels:** Overlap panels to show simultaneous actions or use inset panels for focus.
    - **Varying Sizes & Shapes:** Mix large and small panels. Use non-rectangular shapes to match the scene's mood.
    - **Panel Breaking:** For high impact, have characters or effects extend beyond the panel borders.
3.  **Canvas Integration:** {canvas_rule}
4.  **Content:**
    - **Sketch, Not Final Art:** Use rough, simple lines and basic shapes. This is a compositional guide.
    - **Character Posing:** {posing}
    - **Character-Free Panels:** If the story describes a panel with only backgrounds or objects, DO NOT draw characters in it. Sketch the described environment instead.
5.  **ABSOLUTELY NO TEXT:** The final output image MUST NOT contain any text, labels, numbers, or annotations. It must be a pure visual sketch ONLY.
"""
    if has_previous:
        text += """
**Visual Continuity:**
This page's layout MUST be a logical continuation of the provided "Previous Page Image". Analyze its composition and ensure a smooth visual transition. Maintain a consistent artistic style with the previous sketch.
"""
        if previous_page.sceneDescription:
            text += f"\n**Previous Page Story:**\n---\n{previous_page.sceneDescription}\n---\n"

    text += f"""
**Story to Illustrate:**
---
{story}
---
"""
    return Prompt(LAYOUT_PROPOSAL, text, tuple(attachments))


# ------------------ CHARACTER SHEETS --------------


def build_character_sheet_prompt(reference_images: Sequence[str], character_name: str,
                                 color_mode: ColorMode) -> Prompt:
    text = f"""You are a professional manga artist. Your task is to create a character reference sheet for a character named "{character_name}".

**Instructions:**
1.  **Reference Images:** You have been provided with {len(reference_images)} reference image(s). Synthesize the key features from ALL of them to create a single, cohesive character design. For example, if one image shows a scar and another shows the character's hairstyle, include both in the final design.
2.  **Style:** Generate the sheet in a clean, {color_style(color_mode)} manga style, suitable for an artist's reference.
3.  **Content & Layout:** {SIX_POSE_LAYOUT}
4.  **Output:** {SHEET_ONLY_OUTPUT}
"""
    attachments = tuple(attach(f"Reference Image {i}", img) for i, img in enumerate(reference_images, start=1))
    return Prompt(CHARACTER_SHEET, text, attachments)


def build_character_from_reference_prompt(reference_sheets: Sequence[str], character_name: str,
                                          character_concept: str, color_mode: ColorMode) -> Prompt:
    text = f"""You are a professional manga artist. Your task is to create a **completely new and original character** named "{character_name}" by using existing character sheets purely as **ART STYLE REFERENCES**.

**CRITICAL INSTRUCTIONS - READ CAREFULLY:**
1.  **ART STYLE ONLY:** You have been provided with character sheets to be used as **art style references only**. Analyze their line art, coloring style (if applicable), shading techniques, and overall aesthetic. Your final output's art style MUST be a synthesis of these references.
2.  **DO NOT COPY THE REFERENCE CHARACTERS. THIS IS THE MOST IMPORTANT RULE.** You are creating a **NEW** character from the ground up. You are strictly forbidden from copying or closely imitating the designs, physical features (hair style, face shape, eyes), clothing, accessories, or identities of the characters in the reference sheets. The references are for the drawing *style*, not the character *design*.
3.  **NEW CHARACTER CONCEPT:** The new character, "{character_name}", MUST be based ENTIRELY on the following description: "{character_concept}". This description is the single source of truth for the character's appearance and design.
4.  **Style:** Generate the sheet in a clean, {color_style(color_mode)} manga style, matching the reference styles.
5.  **Content & Layout:** {SIX_POSE_LAYOUT}
6.  **Output:** {SHEET_ONLY_OUTPUT}
"""
    attachments = tuple(attach(f"Style Reference {i}", img) for i, img in enumerate(reference_sheets, start=1))
    return Prompt(CHARACTER_FROM_REFERENCE, text, attachments)


def build_edit_character_sheet_prompt(sheet_image: str, character_name: str, edit_prompt: str) -> Prompt:
    text = f"""You are a professional manga artist. Your task is to edit a character reference sheet for a character named "{character_name}".

**Instructions:**
1.  **Reference Image:** Use the provided character sheet as the base.
2.  **Edit Request:** The user wants the following modification: "{edit_prompt}".
3.  **Execution:** Apply the requested change to the character across all poses on the sheet. Maintain the existing style, layout, and overall design.
4.  **Output:** Generate ONLY the final, updated character sheet as a single image. Do not include any text, labels, or explanations.
"""
    return Prompt(EDIT_CHARACTER_SHEET, text, (attach("Character Sheet", sheet_image),))


# ------------------ PAGES -------------------------


def build_manga_page_prompt(characters: Sequence[Character], panel_layout_image: str, scene_description: str,
                            color_mode: ColorMode, previous_page: Optional[Page] = None,
                            generate_empty_bubbles: bool = False) -> Prompt:
    has_previous = bool(previous_page and previous_page.generatedImage)
    sheets = [_sheet(c, "manga page generation") for c in characters]

    attachments = []
    if has_previous:
        attachments.append(attach("Previous Page Image", previous_page.generatedImage))
    for i, sheet in enumerate(sheets, start=1):
        attachments.append(attach(f"Character Reference {i}", sheet))
    attachments.append(attach("Panel Layout", panel_layout_image))

    assets = []
    if has_previous:
        assets.append("**Previous Page Image:** An image of the preceding page for story context.")
    assets += [
        "**Character Sheets:** For each character that appears.",
        "**Panel Layout with Poses:** An image showing the panel composition for the NEW page. This image ALSO CONTAINS visual pose guides for each character, clearly labeled with the character's name.",
        "**Scene Script:** A detailed, panel-by-panel description of the actions, expressions, and composition for the NEW page.",
    ]
    assets_text = "\n".join(f"{n}.  {line}" for n, line in enumerate(assets, start=1))

    references = "\n".join(
        f"- **{c.name}:** Use the character sheet provided as \"Character Reference {i}\"."
        for i, c in enumerate(characters, start=1)) or "- No character sheets are provided for this page."

    continuation = ""
    if has_previous:
        continuation = f"""
**CRUCIAL CONTEXT - STORY CONTINUATION:**
This page MUST be a direct continuation of the previous page provided. Analyze the "Previous Page Image" and its script to ensure seamless narrative and artistic continuity. Maintain character appearances, outfits, locations, and the overall mood from the previous page.

**Previous Page Script:**
---
{previous_page.sceneDescription}
---
"""

    if generate_empty_bubbles:
        bubbles = "The panel layout image may contain speech bubble shapes. You MUST draw these speech bubbles, but leave them COMPLETELY EMPTY. Do NOT add any text, dialogue, or sound effects inside them."
    else:
        bubbles = "If the script includes dialogue, place it inside the speech bubbles drawn in the panel layout. If there are no bubbles in the layout but there is dialogue, create appropriate bubbles."

    text = f"""You are an expert manga artist. Your task is to create a single manga page based on the provided assets and a detailed script.

**Assets Provided:**
{assets_text}

**Character References:**
{references}
{continuation}
**Instructions for the NEW page:**
1.  **Crucial - Match Poses to Characters:** The Panel Layout image labels each pose with a character's name. You MUST use the correct character sheet for the named character and draw them in that pose. If there is a text comment next to a character's pose, use it as a primary instruction for their action.
2.  **Strictly Follow the Script:** The Scene Script is your guide for expressions, shot composition, and narrative context. Execute these details precisely. If the script describes a scene without characters (e.g., a landscape, a close-up of an object), you MUST draw that scene instead of a character.
3.  **Character Consistency & Count:** Draw the characters strictly according to their reference sheets for appearance. **Crucially, only draw the number of characters specified in the script and layout guide for each panel. Do not add extra characters or omit specified characters.**
4.  **Panel Layout & Sizing:** Use the provided panel layout for the comic's structure. **The relative size of each panel in the layout image indicates its narrative importance. Larger panels should depict key moments with more detail, dynamic composition, and focus.**
5.  **Color & Style:** Create the manga in {color_style(color_mode)}. **All text and speech bubbles must have bold, clear, and thick black outlines.**
6.  **Speech Bubbles:** {bubbles}
7.  **Final Output:** Generate ONLY the final manga page as a single image. Do not include any text, descriptions, or explanations.

**Scene Script for the NEW Page:**
---
{scene_description}
---
"""
    return Prompt(MANGA_PAGE, text, tuple(attachments))


def build_colorize_prompt(monochrome_page: str, characters: Sequence[Character]) -> Prompt:
    attachments = [attach("Monochrome Manga Page", monochrome_page)]
    lines = []
    for c in characters:
        sheet = _sheet(c, "page colorization")
        for i, ref in enumerate(c.referenceImages, start=1):
            attachments.append(attach(f"{c.name} Color Reference {i}", ref))
        attachments.append(attach(f"{c.name} Character Sheet", sheet))
        lines.append(f"- **{c.name}:** Use the provided full-color reference images for ACCURATE color information (hair, eyes, clothing, etc.). Use the black-and-white sheet to understand the character's design and line art.")
    references = "\n".join(lines) or "- No character references provided. Choose plausible, consistent colors."

    text = f"""You are a professional digital colorist for manga. Your task is to fully color a monochrome manga page.

**Assets Provided:**
1.  **Monochrome Manga Page:** The page that needs to be colored.
2.  **Character References:** For each character, one or more full-color images and one black-and-white character sheet are provided in sequence.

**Character Color & Design References:**
{references}

**Instructions:**
1.  **Full Colorization:** You must color the ENTIRE page. This includes all characters, objects, backgrounds, and effects within every panel. Do not leave any areas monochrome.
2.  **CRUCIAL - Accurate Character Colors:** This is the most important rule. You MUST use the provided ORIGINAL, FULL-COLOR reference images to ensure that each character is colored with their correct and consistent color scheme. If multiple color references are given for one character, synthesize the colors logically.
3.  **Maintain Line Art:** Preserve the original black line art. Do not redraw or alter it. Your primary task is to add color to the provided black and white image, not to create a new drawing.
4.  **Cohesive Palette:** Ensure the background and environment colors are plausible and create a cohesive mood for the scene.
5.  **Output:** Generate ONLY the final, fully colored manga page as a single image.
"""
    return Prompt(COLORIZE_PAGE, text, tuple(attachments))


def build_edit_page_prompt(original_image: str, instruction: str, mask_image: Optional[str] = None,
                           reference_images: Optional[Sequence[str]] = None) -> Prompt:
    text = "You are a professional manga artist and expert digital editor. Your task is to edit the provided manga page image based on the user's instructions."

    if mask_image:
        text += f"""

**CRITICAL INSTRUCTIONS FOR MASKING:**
You have been provided with an original image and a mask image. Your task is to **COMPLETELY RE-RENDER** the area of the original image that is **WHITE** in the mask image.
- The **BLACK** areas of the mask must remain **COMPLETELY UNCHANGED** from the original image.
- You must apply the user's text prompt to the **ENTIRE WHITE MASKED AREA**. The change should be comprehensive and not subtle.
- Ensure the result blends seamlessly and naturally with the unchanged parts of the image.

**User's Request:** "{instruction}"
"""
    else:
        text += f"""

**User's Request:** "{instruction}"

**Instructions:**
Apply the requested changes to the entire image as appropriate.
"""

    refs = list(reference_images or [])
    if refs:
        text += f"""
**IMPORTANT REFERENCE IMAGES:**
You have been provided with {len(refs)} reference image(s). These may include character sheets or other visual guides.
- If your task involves adding or correcting a character, you **MUST** use the provided reference images to draw them with perfect accuracy to their design, features, and clothing.
- Use these images as the primary source of truth for style and content in your edits.
"""

    text += "\n**Final Output:** You must generate ONLY the final, edited image. Do not include any text, labels, or explanations in your response."

    attachments = [attach("Original Image", original_image)]
    if mask_image:
        attachments.append(attach("Mask Image", mask_image))
    attachments += [attach(f"Reference Image {i}", img) for i, img in enumerate(refs, start=1)]
    return Prompt(EDIT_PAGE, text, tuple(attachments))


# ------------------ QA ----------------------------


def build_analysis_prompt(panel_layout_image: str, generated_image: str, scene_description: str,
                          characters: Sequence[Character]) -> Prompt:
    character_info = "\n".join(f"- {c.name}" for c in characters) or "- (none listed)"
    text = f"""You are a meticulous Quality Assurance assistant for a manga creation tool. Your task is to analyze a generated manga page and suggest corrections if it deviates from the original plan.

**Provided Assets:**
1.  **Layout & Pose Guide (Image 1):** This is the user's plan. It shows the panel layout and contains labeled skeleton poses for characters.
2.  **Generated Manga Page (Image 2):** This is the final image produced by the AI artist.
3.  **Scene Script:** The text description of what should happen on the page.
4.  **Character List:** The names of characters involved.

**Your Analysis Task:**
Carefully compare the "Generated Manga Page" against the "Layout & Pose Guide" and the "Scene Script". Look for discrepancies such as:
-   **Missing or Incorrect Characters:** Is a character from the script/guide missing, or is the wrong character used?
-   **Incorrect Poses:** Does the character's pose in the final image significantly differ from the skeleton guide?
-   **Layout Deviations:** Are the panel shapes and arrangement different from the guide?
-   **Script Contradictions:** Does the final image contradict the actions or descriptions in the script?
-   **Character Duplication:** Check if the same character appears multiple times within the same panel or in a way that is logically impossible for the scene. For example, a character cannot be in two places at once unless the script specifies a clone, twin, or magical effect.
-   **Contextual Inappropriateness:** Analyze if characters are placed in situations that contradict their role or the scene's logic. For example, a character who is supposed to be hiding should not be in the open. A character described as sad should not have an inappropriately cheerful pose.

**Your Output:**
You MUST respond with a single JSON object with the following structure:
{{
  "analysis": "A brief, human-readable summary of your findings. Describe any discrepancies you found, or state that the image is accurate.",
  "has_discrepancies": boolean, // true if you found any issues, false otherwise.
  "correction_prompt": "If has_discrepancies is true, write a detailed, specific, and clear instruction prompt for an image editing AI to fix ALL the identified issues in one go. If false, this should be an empty string."
}}

**Example Correction Prompt:**
"In the top-left panel, redraw the character 'Kaito' to match the skeleton pose, making sure he is holding a sword. In the bottom panel, add the character 'Anya' who is currently missing; she should be shown looking surprised. On the right, the two instances of 'Kaito' are a mistake, remove the one that is further back. Keep the art style consistent."

**Scene Script:**
---
{scene_description}
---

**Characters in Scene:**
{character_info}
"""
    attachments = (attach("Image 1: Layout & Pose Guide", panel_layout_image),
                   attach("Image 2: Generated Manga Page", generated_image))
    return Prompt(ANALYSIS, text, attachments)


_BUILDERS: Dict[str, Callable[..., Prompt]] = {
    WORLDVIEW: build_worldview_prompt,
    STORY_SUGGESTION: build_story_suggestion_prompt,
    LAYOUT_PROPOSAL: build_layout_prompt,
    CHARACTER_SHEET: build_character_sheet_prompt,
    CHARACTER_FROM_REFERENCE: build_character_from_reference_prompt,
    EDIT_CHARACTER_SHEET: build_edit_character_sheet_prompt,
    MANGA_PAGE: build_manga_page_prompt,
    COLORIZE_PAGE: build_colorize_prompt,
    EDIT_PAGE: build_edit_page_prompt,
    ANALYSIS: build_analysis_prompt,
}

PROMPT_KINDS = tuple(_BUILDERS)


def build_prompt(kind: str, **params) -> Prompt:
    try:
        builder = _BUILDERS[kind]
    except KeyError:
        raise ValueError(f"Unknown prompt kind: {kind}") from None
    return builder(**params)
