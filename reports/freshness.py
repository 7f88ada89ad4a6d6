import logging

from timeutils import to_instant

logger = logging.getLogger(__name__)


class FreshnessTracker:
    """Report only documents newer than anything already shown.

    A Firestore listener on ``order_by(field, DESC).limit(N)`` redelivers the
    whole top-N window on every change, not a diff. The tracker remembers
    the newest instant reported so far and filters each snapshot against it.
    The first batch only sets the baseline; the caller has printed it already.
    """

    def __init__(self, field='submittedAt'):
        self.field = field
        self._last_seen = None

    @property
    def last_seen(self):
        return self._last_seen

    def instant_of(self, doc):
        return to_instant(doc.get(self.field))

    def observe(self, batch):
        """Return the documents of ``batch`` that are new, oldest first.

        ``batch`` is ordered newest first.
        """
        if not batch:
            return []

        if self._last_seen is None:
            self._last_seen = self.instant_of(batch[0])
            logger.debug(f'Baseline set to {self._last_seen}')
            return []

        fresh = []
        for doc in batch:
            instant = self.instant_of(doc)
            if instant is not None and instant > self._last_seen:
                fresh.append((instant, doc))
        fresh.sort(key=lambda pair: pair[0])

        if fresh:
            newest = fresh[-1][0]
            if newest > self._last_seen:
                self._last_seen = newest
        return [doc for _, doc in fresh]
