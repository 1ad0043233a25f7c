"""
TrialDoc Backend - Completion Response Parser
===============================================

Pure functions that normalize model output before it is returned:

    clean_markdown()     strip headings, bold, code fences and inline backticks
    extract_confidence() trailing "CONFIDENCE SCORE: N%" → N / 100, or None
    extract_sections()   heading-keyword split into the five reasoning sections

Section extraction is a line heuristic. A section whose heading never appears
(or whose body is empty) is reported as NOT_PROVIDED rather than omitted.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

NOT_PROVIDED = "Not provided"

_HEADING_MARKER = re.compile(r"^[ \t]*#{1,6}[ \t]*", re.MULTILINE)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_CODE_FENCE = re.compile(r"```[\w+.-]*")
_CONFIDENCE = re.compile(r"CONFIDENCE\s+SCORE\s*:\s*(\d+(?:\.\d+)?)\s*%", re.IGNORECASE)

# Whole line is an upper-case label, optionally numbered, optionally ending in ":"
_CAPS_HEADING = re.compile(r"^(?:\d+[.)]\s*)?[A-Z][A-Z0-9 &/()'-]{2,}(?::\s*)?$")

SECTION_HEADINGS: Dict[str, Tuple[str, ...]] = {
    "decisionSummary": ("DECISION SUMMARY", "SUMMARY", "DECISION", "RECOMMENDATION"),
    "rationale": ("RATIONALE", "REASONING", "JUSTIFICATION"),
    "supportingEvidence": ("SUPPORTING EVIDENCE", "SUPPORTING DATA", "EVIDENCE"),
    "alternativesConsidered": ("ALTERNATIVES CONSIDERED", "OTHER OPTIONS", "ALTERNATIVES"),
    "riskAssessment": ("RISK ASSESSMENT", "RISK ANALYSIS", "RISKS"),
}


def _heading_pattern(synonyms: Tuple[str, ...]) -> Pattern[str]:
    # Longest first so "DECISION SUMMARY" wins over "DECISION"
    names = sorted(synonyms, key=len, reverse=True)
    alternation = "|".join(r"\s+".join(map(re.escape, name.split())) for name in names)
    return re.compile(
        rf"^\s*(?:\d+[.)]\s*)?(?:{alternation})\s*(?::|$)",
        re.IGNORECASE,
    )


_SECTION_PATTERNS: Dict[str, Pattern[str]] = {
    key: _heading_pattern(synonyms) for key, synonyms in SECTION_HEADINGS.items()
}


def clean_markdown(text: str) -> str:
    """
    Remove lightweight markup by literal substitution.

    >>> clean_markdown("## Result\\n**Diagnosis**: flu `ICD-10`")
    'Result\\nDiagnosis: flu ICD-10'
    """
    if not text:
        return ""
    cleaned = _HEADING_MARKER.sub("", text)
    cleaned = _BOLD.sub(r"\1", cleaned)
    cleaned = _CODE_FENCE.sub("", cleaned)
    cleaned = cleaned.replace("`", "")
    return cleaned.strip()


def extract_confidence(text: str) -> Optional[float]:
    """Last confidence annotation as a 0-1 fraction; None when there is none."""
    matches = _CONFIDENCE.findall(text or "")
    if not matches:
        return None
    value = float(matches[-1]) / 100
    return min(max(value, 0.0), 1.0)


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if _CAPS_HEADING.match(stripped) or _CONFIDENCE.match(stripped):
        return True
    return any(pattern.match(stripped) for pattern in _SECTION_PATTERNS.values())


def _capture(lines: List[str], pattern: Pattern[str]) -> Optional[str]:
    for index, line in enumerate(lines):
        match = pattern.match(line)
        if not match:
            continue
        body = [line[match.end():].strip()]
        for following in lines[index + 1:]:
            if _is_heading(following):
                break
            body.append(following.rstrip())
        return "\n".join(body).strip()
    return None


def extract_sections(text: str) -> Dict[str, str]:
    """
    Split reasoning output into decisionSummary, rationale, supportingEvidence,
    alternativesConsidered and riskAssessment.

    Each section starts at the first line beginning with one of its heading
    synonyms and runs to the next heading line or the end of the text. A line
    with text after its label, such as "ICD-10: J11.1 ...", is body text.
    """
    lines = (text or "").splitlines()
    sections = {}
    for key, pattern in _SECTION_PATTERNS.items():
        sections[key] = _capture(lines, pattern) or NOT_PROVIDED
    return sections
