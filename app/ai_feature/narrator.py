from dataclasses import dataclass
from typing import Any, Dict, List, Optional

NO_DATA_NOTICE = "There is no data available."
RESULTS_INTRO = "Here are the results:"


@dataclass
class NarratedResult:
    content: str
    rows: List[Dict[str, Any]]
    description: str
    sql_query: str


def narrate(
    content: Optional[str],
    rows: List[Dict[str, Any]],
    description: str,
    sql_query: str,
) -> NarratedResult:
    """Make sure a tool-assisted answer always has explanatory text."""
    has_text = bool(content and content.strip())

    if has_text:
        text = content if rows else f"{content} {NO_DATA_NOTICE}"
    else:
        opener = f"I've queried the database to {description.lower()}."
        text = f"{opener} {RESULTS_INTRO if rows else NO_DATA_NOTICE}"

    return NarratedResult(
        content=text, rows=rows, description=description, sql_query=sql_query
    )
