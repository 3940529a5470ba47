"""
Prompt builders for AI letter drafting.

Two request shapes are supported: the structured letter request (sender,
recipient, matter and desired resolution) and the template payload (a
template body with placeholder values, extra context, tone and length).
Both produce a (system_prompt, user_prompt) pair for the Claude API.
"""

from src.shared.models import LetterRequestFields

SYSTEM_PROMPT = (
    "You are a professional legal letter writer. You draft clear, formal legal "
    "correspondence on behalf of clients and their attorneys. Use appropriate legal "
    "language, state the matter precisely, and keep a professional but firm tone. "
    "Respond with the letter only, without commentary."
)

# Length descriptions for template drafting
_LENGTH_DESCRIPTIONS = {
    "short": "concise and to the point.",
    "medium": "standard, with sufficient detail.",
    "long": "comprehensive and highly detailed.",
}

DEFAULT_TONE = "formal"
DEFAULT_LENGTH = "medium"


def build_structured_prompt(fields: LetterRequestFields) -> tuple[str, str]:
    """
    Build prompts for a structured letter request.

    Args:
        fields: The sender, recipient and matter details.

    Returns:
        Tuple of (system_prompt, user_prompt).
    """
    user_prompt = f"""Generate a formal legal letter based on the following information:

Sender: {fields.sender_name}
Sender Address: {fields.sender_address}
Attorney/Law Firm: {fields.attorney_name}
Recipient: {fields.recipient}
Subject/Matter: {fields.subject}
Desired Resolution: {fields.desired_resolution}
Letter Type: {fields.letter_type}

Please create a professional, formal legal letter that:
1. Uses appropriate legal language and formatting
2. Clearly states the issue/matter
3. Requests the desired resolution
4. Maintains a professional but firm tone
5. Includes proper legal disclaimers if applicable
6. Is formatted as a complete business letter with proper headers

The letter should be comprehensive but concise, typically 1-2 pages when printed."""
    return SYSTEM_PROMPT, user_prompt


def _style_instructions(tone: str | None, length: str | None) -> str:
    if not tone and not length:
        return ""

    lines = ["**Tone & Style Instructions:**"]
    if tone:
        lines.append(f"- **Tone:** The tone of the letter should be professional and {tone.lower()}.")
    if length:
        description = _LENGTH_DESCRIPTIONS.get(length.lower(), _LENGTH_DESCRIPTIONS[DEFAULT_LENGTH])
        lines.append(
            f"- **Length:** The filled-in sections should be relatively {length.lower()}, "
            f"resulting in a letter that is {description}"
        )
    return "\n".join(lines)


def build_template_prompt(
    title: str,
    template_body: str | None = None,
    template_fields: dict[str, str] | None = None,
    additional_context: str | None = None,
    tone: str | None = None,
    length: str | None = None,
) -> tuple[str, str]:
    """
    Build prompts for completing a letter template.

    Placeholders without a supplied value must come back as
    "[Information Not Provided]" rather than the raw placeholder.

    Args:
        title: The letter's subject.
        template_body: Template text with bracketed placeholders.
        template_fields: Placeholder name to value.
        additional_context: Free text the user wants worked in.
        tone: e.g. Formal, Aggressive, Conciliatory, Neutral.
        length: Short, Medium or Long.

    Returns:
        Tuple of (system_prompt, user_prompt).
    """
    field_lines = "\n".join(f"- {key}: {value}" for key, value in (template_fields or {}).items())
    style = _style_instructions(tone, length)

    sections = [
        "Your task is to complete the following letter template using the user-provided details.",
        f'The letter\'s subject is "{title}".',
        "",
        "**Template to complete:**",
        "---",
        template_body or "(No template provided. Write the letter from the details below.)",
        "---",
        "",
        "**User-provided details to fill in the placeholders:**",
        field_lines or "- None provided",
        "",
        "**Additional Context from the user (incorporate this where relevant):**",
        additional_context or "No additional context provided.",
    ]
    if style:
        sections += ["", style]
    sections += [
        "",
        "**Instructions:**",
        "1. Carefully replace the placeholders (e.g., [Your Name], [Amount Owed]) in the "
        "template with the corresponding user-provided details.",
        '2. If a detail for a placeholder is not provided, replace it with "[Information Not '
        'Provided]". Do not leave the original placeholder in the text.',
        '3. Incorporate the "Additional Context" where it is most relevant within the letter body.',
        "4. Ensure the final letter flows naturally and is grammatically correct.",
        "5. Adhere strictly to the Tone & Style instructions when filling in the template.",
        "6. Respond with ONLY the completed body of the letter. Do not include a subject line, "
        "greetings, sign-offs, or explanations outside the letter's content.",
    ]
    return SYSTEM_PROMPT, "\n".join(sections)
