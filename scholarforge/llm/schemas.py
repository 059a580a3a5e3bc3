"""JSON-schema definitions for structured model output.

Each constant is a complete ``output_schema`` argument for
``ModelGateway.invoke``.
"""

NOVELTY_ASSESSMENT_SCHEMA = {
    "name": "novelty_assessment",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "score": {"type": "number"},
            "classification": {"type": "string"},
            "reasoning": {"type": "string"},
        },
        "required": ["score", "classification", "reasoning"],
        "additionalProperties": False,
    },
}

QUALITY_ASSESSMENT_SCHEMA = {
    "name": "quality_assessment",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "score": {"type": "number"},
            "feedback": {"type": "string"},
        },
        "required": ["score", "feedback"],
        "additionalProperties": False,
    },
}

FIGURES_TABLES_PLAN_SCHEMA = {
    "name": "figures_tables_plan",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "figures": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "figureType": {"type": "string"},
                        "caption": {"type": "string"},
                        "altText": {"type": "string"},
                    },
                    "required": ["figureType", "caption", "altText"],
                    "additionalProperties": False,
                },
            },
            "tables": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "caption": {"type": "string"},
                        "columns": {"type": "array", "items": {"type": "string"}},
                        "rows": {
                            "type": "array",
                            "items": {"type": "array", "items": {"type": "string"}},
                        },
                    },
                    "required": ["caption", "columns", "rows"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["figures", "tables"],
        "additionalProperties": False,
    },
}
