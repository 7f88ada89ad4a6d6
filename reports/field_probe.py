"""
Pick the timestamp field that places documents inside a day window.

Documents from different app versions record "when" under different field
names, and not every field is present everywhere or indexed for range
queries. Candidates are tried server-side in priority order; when none of
them returns anything the whole collection is fetched once and filtered
locally.
"""

import logging
from dataclasses import dataclass, field as dataclass_field

from timeutils import to_instant

logger = logging.getLogger(__name__)

TIME_FIELDS = ('submittedAt', 'updatedAt', 'lastUpdatedAt', 'createdAt', 'gameDate')


@dataclass
class ProbeResult:
    field: str | None
    docs: list = dataclass_field(default_factory=list)
    no_usable_field: bool = False


def _server_side(candidate_fields, window, server_query):
    for name in candidate_fields:
        try:
            docs = server_query(name, window.start, window.end)
        except Exception as e:
            # missing index or field; try the next candidate
            logger.debug(f"Range query on '{name}' failed: {e}")
            continue
        if docs:
            return ProbeResult(field=name, docs=list(docs))
        logger.debug(f"Range query on '{name}' returned no documents")
    return None


def _client_side(candidate_fields, window, all_docs):
    used_field = None
    in_range = []
    for doc in all_docs:
        for name in candidate_fields:
            if to_instant(doc.get(name)) in window:
                if used_field is None:
                    used_field = name
                in_range.append(doc)
                break
    if not in_range:
        return None
    return ProbeResult(field=used_field, docs=in_range)


def select_timestamp_field(candidate_fields, window, server_query, fetch_all):
    """Return the documents of ``window`` and the field that selected them.

    ``server_query(field, start, end)`` runs a ``start <= field < end`` query
    and may raise; ``fetch_all()`` returns every document and its failures
    propagate. If nothing can be placed in the window the full set comes
    back with ``no_usable_field`` set, so a broken heuristic shows too much
    rather than an empty report.
    """
    result = _server_side(candidate_fields, window, server_query)
    if result is not None:
        return result

    all_docs = list(fetch_all())
    result = _client_side(candidate_fields, window, all_docs)
    if result is not None:
        logger.info(f"No server-side match; filtered {len(result.docs)} of {len(all_docs)} documents client-side")
        return result

    logger.warning(f'No candidate field of {len(all_docs)} documents falls in the window')
    return ProbeResult(field=None, docs=all_docs, no_usable_field=True)
