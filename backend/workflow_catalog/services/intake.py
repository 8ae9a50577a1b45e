"""
Import Intake

Accepts a batch of uploaded files, drops content duplicates (within the batch
and against the catalog), and opens a session with the survivors queued in
upload order.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import AllFilesCataloguedError, StorageError, ValidationError
from ..schemas.import_session import IntakeFile, IntakeResponse
from .catalog_store import CatalogStore
from .dedup import dedup_key_for_content
from .queue_store import QueueStore
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


@dataclass
class IntakeCandidate:
    name: str
    path: str
    content: str
    size: int
    dedup_key: Optional[str] = None


def validate_import_tag(tag: Optional[str]) -> str:
    """Default and validate an import tag"""
    if tag is None or tag == "":
        return settings.DEFAULT_IMPORT_TAG
    if not isinstance(tag, str) or not TAG_PATTERN.match(tag):
        raise ValidationError("Import tag may only contain letters, digits, hyphens and underscores")
    if len(tag) > settings.MAX_TAG_LENGTH:
        raise ValidationError(f"Import tag must be at most {settings.MAX_TAG_LENGTH} characters")
    return tag


class ImportIntake:
    """Intake of one upload batch, bound to one SQLAlchemy session"""

    def __init__(
        self,
        db: Session,
        catalog: Optional[CatalogStore] = None,
        sessions: Optional[SessionManager] = None,
        queue: Optional[QueueStore] = None,
    ):
        self.db = db
        self.catalog = catalog or CatalogStore(db)
        self.queue = queue or QueueStore(db)
        self.sessions = sessions or SessionManager(db, self.queue)

    def start_import(
        self,
        files: Optional[Iterable[IntakeFile]],
        credential: Optional[str],
        import_tag: Optional[str] = None,
    ) -> IntakeResponse:
        """
        Validate, dedup and enqueue a batch.

        Raises:
            ValidationError: malformed request (nothing is written)
            AllFilesCataloguedError: every file was a duplicate
        """
        candidates = self._validate(files, credential)
        tag = validate_import_tag(import_tag)

        accepted, skipped = self.filter_new(candidates)
        if not accepted:
            logger.info(f"[Intake] All {len(candidates)} file(s) already catalogued")
            raise AllFilesCataloguedError(skipped)

        try:
            session = self.sessions.create(len(accepted), credential, tag, commit=False)
            for candidate in accepted:
                self.queue.enqueue(
                    session.id,
                    candidate.name,
                    candidate.path,
                    candidate.content,
                    candidate.size,
                    commit=False,
                )
            self.sessions.update(session.id, skipped_files=skipped, commit=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to start import: {e}") from e

        logger.info(
            f"[Intake] Session {session.id[:8]}... started: {len(accepted)} queued, "
            f"{skipped} skipped, tag '{tag}'"
        )
        return IntakeResponse(session_id=session.id, total_files=len(accepted), skipped_count=skipped)

    def filter_new(self, candidates: List[IntakeCandidate]):
        """
        Split candidates into (accepted, skipped_count).

        A file is skipped when its dedup key was already seen earlier in this
        batch, or when the catalog already holds it (by key, or by name/path
        when the key is indeterminate).
        """
        accepted: List[IntakeCandidate] = []
        seen_keys: Set[str] = set()
        skipped = 0

        for candidate in candidates:
            candidate.dedup_key = dedup_key_for_content(candidate.content, candidate.path)

            if candidate.dedup_key and candidate.dedup_key in seen_keys:
                skipped += 1
                logger.info(f"[Intake] Skipping duplicate in batch: {candidate.name} (ID: {candidate.dedup_key})")
                continue

            if self.catalog.is_cached(candidate.name, candidate.path, candidate.dedup_key):
                skipped += 1
                logger.info(f"[Intake] Skipping catalogued workflow: {candidate.name} (ID: {candidate.dedup_key})")
                continue

            accepted.append(candidate)
            if candidate.dedup_key:
                seen_keys.add(candidate.dedup_key)

        return accepted, skipped

    @staticmethod
    def _validate(files, credential) -> List[IntakeCandidate]:
        if not files or not credential:
            raise ValidationError("Missing files or API key")
        if not isinstance(credential, str) or not credential.strip():
            raise ValidationError("API key must be a non-empty string")

        candidates = []
        for index, raw in enumerate(files):
            try:
                file = raw if isinstance(raw, IntakeFile) else IntakeFile.model_validate(raw)
            except SchemaValidationError as e:
                raise ValidationError(f"File #{index + 1} is malformed: {e.error_count()} invalid field(s)") from e
            if not file.name or not file.name.strip():
                raise ValidationError(f"File #{index + 1} has no name")
            if file.content is None:
                raise ValidationError(f"File '{file.name}' has no content")
            if file.size is not None and file.size < 0:
                raise ValidationError(f"File '{file.name}' has a negative size")

            size = file.size if file.size is not None else len(file.content.encode("utf-8"))
            if size > settings.MAX_UPLOAD_SIZE:
                raise ValidationError(f"File '{file.name}' exceeds the {settings.MAX_UPLOAD_SIZE} byte limit")

            candidates.append(IntakeCandidate(
                name=file.name,
                path=file.path or "",
                content=file.content,
                size=size,
            ))
        return candidates
