"""
Health prompt construction.

Builds the message lists for the insights and summary conveniences: a fixed
system prompt followed by one user message carrying the health data grouped
by type. Serialization is deterministic so identical data produces identical
cache keys.
"""

from aidoc_gateway.models.domain import HealthData, Message

HEALTH_SYSTEM_PROMPT = (
    "You are AIDOC, a compassionate and knowledgeable AI health assistant. "
    "Your role is to help users understand their health data and build healthy habits. "
    "Be empathetic, supportive, and provide actionable insights. "
    "Focus on patterns, trends, and gentle recommendations. "
    "Never diagnose medical conditions - encourage consulting healthcare professionals "
    "when needed."
)

NO_HEALTH_DATA = "No health data available."


def _enum_value(value: object) -> str:
    return str(getattr(value, "value", value))


def _format_number(value: float) -> str:
    # 72.0 -> "72", 7.5 -> "7.5"
    return str(int(value)) if float(value).is_integer() else str(value)


def format_health_data(data: list[HealthData]) -> str:
    """
    Serialize health data grouped by type.

    Groups appear in first-seen order; within a group, points keep input
    order. One line per type:

        steps: 8000 steps (oura_ring), 9500 steps (apple_watch)
    """
    if not data:
        return NO_HEALTH_DATA

    grouped: dict[str, list[HealthData]] = {}
    for point in data:
        grouped.setdefault(_enum_value(point.type), []).append(point)

    lines = []
    for data_type, points in grouped.items():
        values = ", ".join(
            f"{_format_number(p.value)} {p.unit} ({_enum_value(p.source)})" for p in points
        )
        lines.append(f"{data_type}: {values}")
    return "\n".join(lines)


def build_insights_messages(data: list[HealthData]) -> list[Message]:
    """Messages asking for insights over the given data."""
    return [
        Message(role="system", content=HEALTH_SYSTEM_PROMPT),
        Message(
            role="user",
            content=f"Analyze this health data and provide insights:\n{format_health_data(data)}",
        ),
    ]


def build_summary_messages(data: list[HealthData], period: str) -> list[Message]:
    """Messages asking for a summary of the given period."""
    return [
        Message(role="system", content=HEALTH_SYSTEM_PROMPT),
        Message(
            role="user",
            content=f"Provide a health summary for {period}:\n{format_health_data(data)}",
        ),
    ]
