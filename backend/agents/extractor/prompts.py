"""
Prompt for the school-record extraction call.

The JSON schema block is rendered from the section registry so the prompt
and the validator can never disagree about field names.
"""

from backend.records.sections import SECTIONS, FieldKind


_KIND_HINTS = {
    FieldKind.INT: "number",
    FieldKind.OPTIONAL_INT: "number|null",
    FieldKind.OPTIONAL_FLOAT: "number|null",
    FieldKind.TEXT: "string",
}

# Fields whose values come from a closed set
_FIELD_OVERRIDES = {
    ("creativeActivities", "area"): '"자율활동"|"동아리활동"|"진로활동"',
}


def _render_schema() -> str:
    lines = ["{"]
    for index, section in enumerate(SECTIONS):
        fields = ", ".join(
            f'"{client}": {_FIELD_OVERRIDES.get((section.key, client), _KIND_HINTS[kind])}'
            for client, _, kind in section.fields
        )
        separator = "," if index < len(SECTIONS) - 1 else ""
        lines.append(f'  "{section.key}": [ {{ {fields} }} ]{separator}')
    lines.append("}")
    return "\n".join(lines)


EXTRACTION_SYSTEM_PROMPT = """You are an expert parser of Korean high school student records (학교생활기록부).
The attached files (PDF pages or photos) are one student's record. Read every page and
structure its contents to match the JSON schema below exactly.

## JSON SCHEMA

{schema}

## CLASSIFICATION RULES

1. **Subject sections**:
   - Subjects that have a rank grade (석차등급, gradeRank) → generalSubjects
   - Subjects that have an achievement distribution (성취도별 분포비율, achievementDistribution) → careerSubjects
   - Physical education, music and art subjects → artsPhysicalSubjects

2. **Creative experiential activities**:
   - area MUST be one of "자율활동", "동아리활동", "진로활동"

3. **School year (year)**:
   - 1st year = 1, 2nd year = 2, 3rd year = 3 (numbers only)

4. **Missing values**:
   - Numeric fields with no data → null
   - String fields with no data → empty string ""

5. **Do NOT include an id field** (the server assigns identifiers)

6. If a section has no data, return an empty array [] for it

Output valid JSON only. No explanations, no markdown, nothing but the JSON object.
"""


EXTRACTION_PROMPT = EXTRACTION_SYSTEM_PROMPT.format(schema=_render_schema())
