"""Parser for the theme / category / evidence markdown the consolidation model returns.

Expected shape::

    ### Theme: Project Phoenix Launch

    **Category: Impact & Ownership**
    * **Evidence:** "Shipped the mobile API contract with the backend team."
      * **Attribution:** [USER]

Labels may be bolded with the colon inside or outside the bold
(``**Evidence:**`` or ``**Evidence**:``).

Lines that match none of the conventions (prose, blank lines, other headings)
are ignored. Lines that match a convention but appear where the tree has no
parent for them raise ``ParseError`` instead of being dropped.
"""

import re

from advanceweekly.errors import ParseError
from advanceweekly.models.consolidation import Attribution, Category, Evidence, Theme

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)
_THEME_RE = re.compile(r"^###(?!#)\s*(?:theme\s*:\s*)?(?P<name>.*)$", re.IGNORECASE)
_CATEGORY_RE = re.compile(r"^\*\*\s*category\s*\**\s*:(?P<rest>.*)$", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[*\-+]\s+(?P<body>.+)$")
_LABELLED_RE = re.compile(
    r"^\**\s*(?P<label>evidence|attribution)\s*\**\s*:\s*\**\s*(?P<value>.*)$", re.IGNORECASE
)
_BOLD_LABEL_RE = re.compile(r"^\*\*\s*(?P<label>evidence|attribution)\b", re.IGNORECASE)
_TAG_RE = re.compile(r"\[\s*(?P<tag>[^\]]+?)\s*\]")

_QUOTES = "\"'“”‘’"


def strip_code_fence(text: str) -> str:
    """Remove a single fenced block wrapping the whole response."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group("body").strip() if match else stripped


def parse_attribution(raw: str) -> Attribution:
    """Map an attribution tag such as ``[USER]`` to ``Attribution``."""
    match = _TAG_RE.search(raw)
    tag = (match.group("tag") if match else raw).strip().strip("*").strip().upper()
    if not tag:
        return Attribution.UNSPECIFIED
    if tag == "USER":
        return Attribution.USER
    if tag == "TEAM":
        return Attribution.TEAM
    return Attribution.OTHER


def _clean_name(raw: str) -> str:
    return raw.replace("**", "").strip().rstrip(":").strip()


def parse_themes(text: str) -> list[Theme]:
    """Parse model output into an ordered theme tree.

    Args:
        text: Raw model response.

    Returns:
        Themes in source order, each with categories and evidence in source
        order. Themes may have no categories and categories no evidence.

    Raises:
        ParseError: If no theme heading is present, or a category, evidence
            or attribution line has no enclosing node.
    """
    if not text or not text.strip():
        raise ParseError("Model response is empty")

    themes: list[Theme] = []
    current_theme: Theme | None = None
    current_category: Category | None = None

    for line_number, line in enumerate(strip_code_fence(text).splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue

        theme_match = _THEME_RE.match(stripped)
        if theme_match:
            name = _clean_name(theme_match.group("name"))
            if not name:
                raise ParseError("Theme heading has no name", line_number)
            current_theme = Theme(name=name)
            current_category = None
            themes.append(current_theme)
            continue

        category_match = _CATEGORY_RE.match(stripped)
        if category_match:
            if current_theme is None:
                raise ParseError("Category appears before any theme", line_number)
            name = _clean_name(category_match.group("rest"))
            if not name:
                raise ParseError("Category line has no name", line_number)
            current_category = Category(name=name)
            current_theme.categories.append(current_category)
            continue

        bullet_match = _BULLET_RE.match(stripped)
        if not bullet_match:
            continue
        body = bullet_match.group("body").strip()
        labelled = _LABELLED_RE.match(body)
        if not labelled:
            bold_label = _BOLD_LABEL_RE.match(body)
            if bold_label:
                raise ParseError(
                    f"Malformed {bold_label.group('label').lower()} line: {stripped}", line_number
                )
            continue

        label = labelled.group("label").lower()
        value = labelled.group("value").strip()
        if label == "evidence":
            if current_category is None:
                raise ParseError("Evidence appears outside a category", line_number)
            statement = value.rstrip("*").strip().strip(_QUOTES).strip()
            if not statement:
                raise ParseError("Evidence line has no statement", line_number)
            current_category.evidence.append(Evidence(statement=statement))
        else:
            if current_category is None or not current_category.evidence:
                raise ParseError("Attribution appears without preceding evidence", line_number)
            current_category.evidence[-1].attribution = parse_attribution(value)

    if not themes:
        raise ParseError("Model response contains no theme headings")
    return themes
