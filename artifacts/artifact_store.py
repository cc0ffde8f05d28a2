"""
Artifact Store

Owns the per-user audio artifact layout and the audio session records.

Features:
    - Deterministic artifact paths per (user, session, message index)
    - First-time user provisioning from the template directory
    - Audio session records (processing → completed | failed)
    - Time-based purge of stale sessions and their files

Artifact Triple:
    <users_dir>/<user dir>/<session_id>_message_<i>.mp3   - synthesized audio (kept for replay)
    <users_dir>/<user dir>/<session_id>_message_<i>.wav   - normalized audio (intermediate)
    <users_dir>/<user dir>/<session_id>_message_<i>.json  - lip-sync timing (intermediate)

<user dir> is the percent-encoded user id (see user_dir_name).

Session records live in the record store table ``audio_sessions`` and are
indexed by creation time in ``audio_sessions_by_created``.
"""

import asyncio
import hashlib
import logging
import re
import shutil
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from artifacts.config import ArtifactConfig
from artifacts.templates import placeholder_for, write_default_templates
from shared.record_store import RecordStore

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "audio_sessions"
SESSIONS_BY_CREATED = "audio_sessions_by_created"

# Session ids become path components; nothing that can climb out of users_dir
_SAFE_COMPONENT = re.compile(r"^[A-Za-z0-9@._-]{1,128}$")

# Longer encoded user ids fall back to a digest to stay under NAME_MAX
MAX_USER_DIR_NAME = 200


class SessionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ArtifactPaths:
    """The artifact triple for one reply segment."""
    audio: Path
    normalized: Path
    timing: Path

    @property
    def intermediates(self) -> List[Path]:
        return [self.normalized, self.timing]


def validate_component(value: str, name: str) -> str:
    """
    Reject identifiers that are unsafe as a single path component.

    Raises:
        ValueError: Empty, too long, contains separators or is '.'/'..'
    """
    if not isinstance(value, str) or not _SAFE_COMPONENT.match(value) or value in (".", ".."):
        raise ValueError(f"Invalid {name}: {value!r}")
    return value


def user_dir_name(user_id: str) -> str:
    """
    Map any user id onto a single safe directory name.

    Everything except letters, digits and ``_-~`` is percent-encoded (dots
    included, so '.' and '..' cannot come out). The mapping is injective:
    quote() never emits '%2E' and always encodes '#', which marks the
    sha256 form used for names longer than MAX_USER_DIR_NAME.

    Raises:
        ValueError: Empty user id
    """
    if not isinstance(user_id, str) or not user_id:
        raise ValueError(f"Invalid user_id: {user_id!r}")

    name = quote(user_id, safe="").replace(".", "%2E")
    if len(name) > MAX_USER_DIR_NAME:
        return "#" + hashlib.sha256(user_id.encode("utf-8")).hexdigest()
    return name


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactStore:
    """
    Per-user audio artifacts plus their session records.

    Usage:
        store = ArtifactStore(ArtifactConfig.from_env(), RecordStore(clients.restricted))
        await store.initialize()
        session_id = await store.open_session("user-1", "hello")
        paths = store.resolve_paths("user-1", session_id, 0)
    """

    def __init__(
        self,
        config: ArtifactConfig,
        records: RecordStore,
        sweep_records: Optional[RecordStore] = None,
    ):
        """
        Args:
            config: Directory layout and retention window
            records: Record store used on the request path (restricted credentials)
            sweep_records: Record store used by purge_expired (service credentials)
        """
        self.config = config
        self.records = records
        self.sweep_records = sweep_records or records

    # ------------------------------------------------------------------ #
    # Layout
    # ------------------------------------------------------------------ #

    async def initialize(self) -> None:
        """Create the base directories and any missing default template."""
        await asyncio.to_thread(self._initialize_directories)
        logger.info(f" Artifact store ready: {self.config.audio_dir.resolve()}")

    def _initialize_directories(self) -> None:
        self.config.users_dir.mkdir(parents=True, exist_ok=True)
        write_default_templates(self.config.templates_dir)

    def user_dir(self, user_id: str) -> Path:
        return self.config.users_dir / user_dir_name(user_id)

    def resolve_paths(self, user_id: str, session_id: str, message_index: int) -> ArtifactPaths:
        """Deterministic artifact paths for one segment. No I/O."""
        validate_component(session_id, "session_id")
        if isinstance(message_index, bool) or not isinstance(message_index, int) or message_index < 0:
            raise ValueError(f"Invalid message_index: {message_index!r}")

        stem = self.user_dir(user_id) / f"{session_id}_message_{message_index}"
        return ArtifactPaths(
            audio=stem.with_suffix(".mp3"),
            normalized=stem.with_suffix(".wav"),
            timing=stem.with_suffix(".json"),
        )

    async def ensure_user_space(self, user_id: str) -> Path:
        """
        Create the user's directory and seed it with templates on first use.

        Idempotent: an existing directory is returned untouched.
        """
        user_dir = self.user_dir(user_id)
        if user_dir.is_dir():
            return user_dir
        return await asyncio.to_thread(self._provision_user, user_id, user_dir)

    def _provision_user(self, user_id: str, user_dir: Path) -> Path:
        user_dir.mkdir(parents=True, exist_ok=True)

        try:
            write_default_templates(self.config.templates_dir)
            templates = sorted(p for p in self.config.templates_dir.iterdir() if p.is_file())
        except OSError as e:
            logger.warning(f"⚠️ Templates unavailable for user {user_id}: {e}")
            return user_dir

        for template in templates:
            target = user_dir / template.name
            try:
                shutil.copyfile(template, target)
            except OSError as e:
                logger.warning(f"⚠️ Could not copy template {template.name} for user {user_id}: {e}, writing placeholder")
                target.write_bytes(placeholder_for(template.name))

        logger.info(f" Provisioned user space for {user_id} ({len(templates)} templates)")
        return user_dir

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    @staticmethod
    def generate_session_id() -> str:
        return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"

    async def open_session(self, user_id: str, text: str) -> str:
        """
        Allocate a session, make sure the user space exists, persist the record.

        The record and its creation-time index entry are committed together.

        Raises:
            RecordStoreError: Persistence unavailable
        """
        session_id = self.generate_session_id()
        await self.ensure_user_space(user_id)

        created_at = utc_now()
        record = {
            "session_id": session_id,
            "user_id": user_id,
            "original_text": text,
            "status": SessionStatus.PROCESSING.value,
            "error_message": None,
            "created_at": created_at.isoformat(),
            "processed_at": None,
        }
        batch = self.records.batch()
        batch.upsert(SESSIONS_TABLE, session_id, record)
        batch.index_add(SESSIONS_BY_CREATED, session_id, created_at.timestamp())
        await self.records.commit(batch)

        logger.debug(f" Opened audio session {session_id} for user {user_id}")
        return session_id

    async def close_session(
        self,
        session_id: str,
        status: SessionStatus,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Move a session to its terminal status.

        ``extra`` carries ``processed_at`` on success or ``error_message`` on failure.

        Returns:
            The updated record, or None if the session no longer exists
        """
        status = SessionStatus(status)
        if status is SessionStatus.PROCESSING:
            raise ValueError("close_session requires a terminal status")

        changes: Dict[str, Any] = {"status": status.value}
        if extra:
            changes.update(extra)

        record = await self.records.update(SESSIONS_TABLE, session_id, changes)
        if record is None:
            logger.warning(f"⚠️ Tried to close unknown audio session {session_id}")
        return record

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self.records.get(SESSIONS_TABLE, session_id)

    # ------------------------------------------------------------------ #
    # Artifacts
    # ------------------------------------------------------------------ #

    async def read_audio(self, path: Path) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def discard_intermediates(self, paths: ArtifactPaths) -> None:
        """Delete the normalized audio and timing files, keeping the playable audio."""
        for path in paths.intermediates:
            await asyncio.to_thread(path.unlink, missing_ok=True)

    def replay_path(self, user_id: str, session_id: str, message_index: int) -> Optional[Path]:
        """
        Retained synthesized audio for a segment, if it has not been purged.

        Raises:
            ValueError: Unsafe identifiers
        """
        path = self.resolve_paths(user_id, session_id, message_index).audio
        return path if path.is_file() else None

    # ------------------------------------------------------------------ #
    # Purge
    # ------------------------------------------------------------------ #

    def _delete_session_files(self, user_id: str, session_id: str) -> int:
        try:
            user_dir = self.user_dir(user_id)
            entries = list(user_dir.iterdir())
        except FileNotFoundError:
            logger.info(f" Directory for user {user_id} doesn't exist, nothing to delete")
            return 0

        deleted = 0
        for entry in entries:
            if entry.name.startswith(session_id) and entry.is_file():
                entry.unlink(missing_ok=True)
                deleted += 1
        return deleted

    async def purge_expired(self, retention: Optional[timedelta] = None) -> int:
        """
        Remove sessions created before now - retention, files first, then the record.

        Per-session failures are logged and skipped.

        Returns:
            Number of sessions purged

        Raises:
            RecordStoreError: The index itself could not be queried
        """
        retention = retention or self.config.retention
        cutoff = utc_now() - retention
        session_ids = await self.sweep_records.index_below(SESSIONS_BY_CREATED, cutoff.timestamp())

        purged = 0
        for session_id in session_ids:
            try:
                record = await self.sweep_records.get(SESSIONS_TABLE, session_id)
                if record is not None:
                    deleted = await asyncio.to_thread(self._delete_session_files, record["user_id"], session_id)
                    logger.debug(f" Deleted {deleted} files for session {session_id}")
                    await self.sweep_records.delete(SESSIONS_TABLE, session_id)
                await self.sweep_records.index_remove(SESSIONS_BY_CREATED, session_id)
                purged += 1
            except Exception as e:
                logger.error(f"❌ Error cleaning session {session_id}: {e}", exc_info=True)

        logger.info(f" Cleaned up {purged} sessions older than {cutoff.isoformat()}")
        return purged
