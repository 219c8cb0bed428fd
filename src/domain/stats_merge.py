"""Right-biased merge of a stats patch into a stats document.

Rule of thumb:
- Patch values win on attribute name collisions.
- Nothing the patch does not name is touched.
- The input document is never mutated; untouched category maps are shared
  with the result, touched ones are copied.
"""

from src.domain.stats_document import Patch, StatsDocument


def merge_stats(doc: StatsDocument, patch: Patch) -> StatsDocument:
    """Merge ``patch`` into ``doc`` and return the new document.

    Args:
        doc (StatsDocument): Current document, left unchanged
        patch (Patch): Parsed patch

    Returns:
        StatsDocument: Document with every patch entry applied
    """
    merged: StatsDocument = dict(doc)
    for category, entry in patch.items():
        dates = dict(merged.get(category, {}))
        attributes = dict(dates.get(entry.date, {}))
        attributes.update(entry.attributes)
        dates[entry.date] = attributes
        merged[category] = dates
    return merged
