import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.errors import ArtifactNotFound
from app.core.uow import UnitOfWork
from app.models.artifact_model import AudioArtifact
from app.utils.file_manager import delete_file, file_mtime, read_file, write_file
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Probed in order when serving an artifact by id. The last entry is the
# naming scheme of files written before provider tagging was introduced.
AUDIO_CANDIDATES = (
    ("tts-gemini-{id}.wav", "audio/wav", "gemini"),
    ("tts-google-{id}.mp3", "audio/mpeg", "google"),
    ("tts-google-{id}.wav", "audio/wav", "google"),
    ("tts-google-{id}.ogg", "audio/ogg", "google"),
    ("gemini25-tts-{id}.wav", "audio/wav", "gemini"),
)

ARTIFACT_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")
MANAGED_FILENAME_PATTERN = re.compile(r"^(tts-(gemini|google)|gemini25-tts)-[A-Za-z0-9-]+\.(wav|mp3|ogg)$")


@dataclass
class StoredAudio:
    artifact_id: str
    filename: str
    content_type: str
    provider: str
    data: bytes

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1]


def artifact_filename(provider: str, artifact_id: str, extension: str) -> str:
    return f"tts-{provider}-{artifact_id}.{extension}"


class ArtifactStore:
    """
    Generated audio on local disk plus its metadata rows. Files are named
    after their artifact id so they can be served without a database lookup.
    """

    def __init__(
        self,
        storage_dir: str,
        session_factory,
        ttl_hours: int = 24,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage_dir = storage_dir
        self._session_factory = session_factory
        self.ttl = timedelta(hours=ttl_hours)
        self._clock = clock

    def path_for(self, filename: str) -> str:
        return os.path.join(self.storage_dir, filename)

    async def write_file(self, filename: str, data: bytes) -> str:
        return await run_in_threadpool(write_file, self.storage_dir, filename, data)

    async def remove_file(self, filename: str) -> bool:
        try:
            return await run_in_threadpool(delete_file, self.path_for(filename))
        except OSError as e:
            logger.error(f"Failed to remove audio file {filename}: {e}")
            return False

    async def add_record(
        self,
        db: AsyncSession,
        *,
        artifact_id: str,
        filename: str,
        provider: str,
        content_type: str,
        text: str,
        voice: str,
        language: str,
        file_size: int,
        duration: Optional[float] = None,
        settings: Optional[dict] = None,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AudioArtifact:
        created_at = self._clock()
        artifact = AudioArtifact(
            id=artifact_id,
            user_id=user_id,
            filename=filename,
            provider=provider,
            content_type=content_type,
            text=text,
            text_length=len(text),
            voice=voice,
            language=language,
            file_size=file_size,
            duration=duration,
            settings=settings or {},
            ip_address=ip_address,
            user_agent=user_agent[:255] if user_agent else None,
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        db.add(artifact)
        await db.flush()
        return artifact

    async def save(
        self,
        data: bytes,
        *,
        filename: str,
        on_recorded: Optional[Callable[[AsyncSession], Awaitable[None]]] = None,
        **record,
    ) -> AudioArtifact:
        """
        Writes the file, then inserts its record in a transaction of its own.
        `on_recorded` runs inside that transaction. If the transaction fails
        the file is removed again so no unrecorded audio is left behind.
        """
        await self.write_file(filename, data)
        try:
            async with UnitOfWork(self._session_factory)() as db:
                artifact = await self.add_record(db, filename=filename, file_size=len(data), **record)
                if on_recorded is not None:
                    await on_recorded(db)
        except SQLAlchemyError:
            await self.remove_file(filename)
            raise
        return artifact

    async def get_by_filename(self, db: AsyncSession, filename: str) -> Optional[AudioArtifact]:
        result = await db.execute(select(AudioArtifact).where(AudioArtifact.filename == filename))
        return result.scalar_one_or_none()

    async def history(self, db: AsyncSession, user_id: int, limit: int = 20) -> List[AudioArtifact]:
        result = await db.execute(
            select(AudioArtifact)
            .where(AudioArtifact.user_id == user_id)
            .order_by(AudioArtifact.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def fetch(self, artifact_id: str) -> StoredAudio:
        """Locates an artifact's bytes by id, probing the known file name patterns in order."""
        if not artifact_id or not ARTIFACT_ID_PATTERN.match(artifact_id):
            raise ArtifactNotFound()

        for template, content_type, provider in AUDIO_CANDIDATES:
            filename = template.format(id=artifact_id)
            path = self.path_for(filename)
            if not await run_in_threadpool(os.path.isfile, path):
                continue
            try:
                data = await run_in_threadpool(read_file, path)
            except FileNotFoundError:
                continue
            return StoredAudio(
                artifact_id=artifact_id,
                filename=filename,
                content_type=content_type,
                provider=provider,
                data=data,
            )
        raise ArtifactNotFound()

    @staticmethod
    def download_name(stored: StoredAudio) -> str:
        if stored.provider == "google":
            return f"google-chirp3-{stored.artifact_id}.{stored.extension}"
        return f"gemini-tts-{stored.artifact_id}.wav"

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Removes artifacts past their expiry, then managed files older than the
        TTL that have no metadata row. A file that cannot be deleted is logged
        and its record is removed regardless. Returns the number removed.
        """
        now = now or self._clock()
        removed = 0

        async with self._session_factory() as db:
            result = await db.execute(select(AudioArtifact).where(AudioArtifact.expires_at < now))
            for artifact in result.scalars().all():
                try:
                    await run_in_threadpool(delete_file, self.path_for(artifact.filename))
                except OSError as e:
                    logger.error(f"Failed to delete expired audio file {artifact.filename}: {e}")
                await db.delete(artifact)
                await db.commit()
                removed += 1

        orphaned = await self._sweep_orphans(now)
        if removed or orphaned:
            logger.info(f"Audio sweep complete: {removed} expired, {orphaned} orphaned files removed.")
        return removed + orphaned

    async def _sweep_orphans(self, now: datetime) -> int:
        if not await run_in_threadpool(os.path.isdir, self.storage_dir):
            return 0

        cutoff = now.replace(tzinfo=timezone.utc).timestamp() - self.ttl.total_seconds()
        filenames = await run_in_threadpool(os.listdir, self.storage_dir)
        orphaned = 0
        async with self._session_factory() as db:
            for filename in sorted(filenames):
                if not MANAGED_FILENAME_PATTERN.match(filename):
                    continue
                mtime = await run_in_threadpool(file_mtime, self.path_for(filename))
                if mtime is None or mtime > cutoff:
                    continue
                if await self.get_by_filename(db, filename) is not None:
                    continue
                try:
                    if await run_in_threadpool(delete_file, self.path_for(filename)):
                        orphaned += 1
                        logger.info(f"Cleaned up orphaned audio file: {filename}")
                except OSError as e:
                    logger.error(f"Failed to delete orphaned audio file {filename}: {e}")
        return orphaned
