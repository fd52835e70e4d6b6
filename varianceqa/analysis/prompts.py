from __future__ import annotations

import json
from typing import Any, Dict, List

VARIANCE_FIELDS = ("kpi", "drivers", "comparison", "impact")

COMMENTARY_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "kpi": {"type": "STRING"},
            "drivers": {"type": "ARRAY", "items": {"type": "STRING"}},
            "comparison": {"type": "STRING"},
            "impact": {"type": "STRING"},
        },
        "propertyOrdering": list(VARIANCE_FIELDS),
    },
}


def extraction_generation_config() -> Dict[str, Any]:
    return {
        "responseMimeType": "application/json",
        "responseSchema": COMMENTARY_RESPONSE_SCHEMA,
    }


def build_extraction_prompt(transcript: str) -> str:
    # Transcript goes in verbatim; only the surrounding template is trimmed.
    return (
        "Analyze the following business commentary and extract key variance analysis points "
        "into a structured JSON array.\n"
        'Each item must have: "kpi" (string), "drivers" (string[]), "comparison" (string), "impact" (string).\n'
        "Only output JSON.\n"
        "\n"
        "Commentary:\n"
        f"{transcript}"
    ).strip()


def serialize_commentary(commentary: List[Any]) -> str:
    return json.dumps(commentary, indent=2, ensure_ascii=False)


def build_query_prompt(commentary: List[Any], query: str) -> str:
    structured = serialize_commentary(commentary)
    return (
        "You are a business analyst. Using this structured variance commentary, "
        "answer the user's question briefly and directly.\n"
        "If the info is not present, say it's not available.\n"
        "\n"
        "Structured Commentary:\n"
        f"{structured}\n"
        "\n"
        f'User Query: "{query}"'
    ).strip()
