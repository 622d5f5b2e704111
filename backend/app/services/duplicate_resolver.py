"""
Duplicate classification of prospective certificates.

No two active records may share a content hash. Each candidate is hashed
and looked up in storage; a candidate repeating content seen earlier in
the same batch is a duplicate of that earlier candidate, so one batch can
never create two active records for one content.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from app.middleware import ClassificationError
from app.models import CertificateContent
from identity_engine import compute_content_hash
from .certificate_store import CertificateStore

logger = logging.getLogger(__name__)


@dataclass
class ClassifiedCandidate:
    """One candidate with its content hash and duplicate status."""

    index: int
    content: CertificateContent
    content_hash: str
    existing_key: Optional[str] = None
    source: Optional[str] = None
    duplicate_of: Optional[int] = None
    warning: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.source is not None


@dataclass
class Classification:
    """Candidates split into new and duplicate, in submission order."""

    new: list[ClassifiedCandidate] = field(default_factory=list)
    duplicates: list[ClassifiedCandidate] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [c.warning for c in self.new + self.duplicates if c.warning]


class DuplicateResolver:
    """Classifies candidates as new or duplicate against a CertificateStore."""

    def __init__(self, store: CertificateStore):
        self.store = store

    async def classify(
        self, candidates: Sequence[CertificateContent]
    ) -> Classification:
        """
        Classify candidates sequentially.

        A failed storage lookup does not abort the run: the candidate is
        logged, marked with a warning and treated as new.

        Args:
            candidates: Certificate contents in submission order

        Returns:
            Classification: new and duplicate candidates
        """
        classification = Classification()
        first_seen: dict[str, ClassifiedCandidate] = {}

        for index, content in enumerate(candidates):
            content_hash = compute_content_hash(content)
            item = ClassifiedCandidate(
                index=index, content=content, content_hash=content_hash
            )

            earlier = first_seen.get(content_hash)
            if earlier is not None:
                item.source = "batch"
                item.duplicate_of = earlier.index
                item.existing_key = earlier.existing_key
                classification.duplicates.append(item)
                logger.info(
                    f"Candidate {index} repeats candidate {earlier.index} "
                    f"(content {content_hash[:12]})"
                )
                continue

            first_seen[content_hash] = item

            try:
                existing = await self.store.find_active_by_content_hash(content_hash)
            except Exception as e:
                error = ClassificationError(content_hash, str(e))
                logger.warning(
                    f"Duplicate lookup failed for candidate {index}, "
                    f"treating as new: {e}"
                )
                item.warning = error.message
                classification.new.append(item)
                continue

            if existing is None:
                classification.new.append(item)
            else:
                item.source = "storage"
                item.existing_key = existing.certificate_key
                classification.duplicates.append(item)
                logger.info(
                    f"Candidate {index} duplicates certificate "
                    f"{existing.certificate_key[:12]}"
                )

        logger.info(
            f"Classified {len(candidates)} candidates: "
            f"{len(classification.new)} new, {len(classification.duplicates)} duplicate"
        )
        return classification
