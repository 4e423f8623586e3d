import re

from app.agents.chart.schemas import ChartReference

CHART_ID_PARAM = "grafico_id="
MAX_ALT_TEXT = 256

# Markdown image whose URL query carries ``grafico_id=<id>``. The alt text is
# bounded so runs of unclosed "![" scan in linear time.
CHART_REFERENCE_PATTERN = re.compile(
    r"!\[[^\]\n]{0,%d}\]\(" % MAX_ALT_TEXT
    + r"(?P<url>https?://[^\s()]*?[?&]grafico_id=(?P<chart_id>[A-Za-z0-9-]+)(?=[&#)])[^\s)]*)"
    r"\)"
)


def extract_reference(text: str) -> ChartReference | None:
    """Find the first embedded chart reference and strip every reference from the text."""
    if not isinstance(text, str) or CHART_ID_PARAM not in text:
        return None

    match = CHART_REFERENCE_PATTERN.search(text)
    if match is None:
        return None

    # Removing one reference can join the pieces around it into another.
    cleaned, removed = CHART_REFERENCE_PATTERN.subn("", text)
    while removed:
        cleaned, removed = CHART_REFERENCE_PATTERN.subn("", cleaned)

    return ChartReference(
        url=match.group("url"),
        chart_id=match.group("chart_id"),
        cleaned_text=cleaned.strip(),
    )
