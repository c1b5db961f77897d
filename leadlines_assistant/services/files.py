"""File lifecycle: upload/attach/record and detach/delete/forget, in that order.

A local file binding is only ever written after the provider holds the file
and has attached it to the assistant, and only removed after the provider
steps have gone through.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.session import transaction
from ..exceptions import ConflictError, InvalidRequestError, PartialWriteError, ProviderError
from ..identity.principal import CredentialSource
from ..logging_utils import get_logger
from ..provider.client import AssistantProviderClient
from ..repositories.base import SortKey
from ..repositories.file_repo import FileBindingRepository
from ..schemas import FileRecord, FileUpload

logger = get_logger(__name__)


class FileLifecycleManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: AssistantProviderClient,
        purpose: str = "assistants",
        max_bytes: int = 25 * 1024 * 1024,
    ):
        self._sf = session_factory
        self._client = client
        self.purpose = purpose
        self.max_bytes = max_bytes

    def _validate(self, upload: FileUpload) -> None:
        if not upload.filename or not upload.filename.strip():
            raise InvalidRequestError("File name is required")
        if upload.size == 0:
            raise InvalidRequestError("File is empty", filename=upload.filename)
        if upload.size > self.max_bytes:
            raise InvalidRequestError(
                "File is too large", filename=upload.filename, size=upload.size, max_bytes=self.max_bytes
            )

    async def list_files(self, owner: str, limit: int = 100, offset: int = 0) -> list[FileRecord]:
        async with transaction(self._sf) as session:
            files = await FileBindingRepository(session).list_for_owner(
                owner, sort=SortKey.CREATED_AT, limit=limit, offset=offset
            )
            return [FileRecord.model_validate(f) for f in files]

    async def upload_file(
        self, owner: str, credentials: CredentialSource, assistant_id: str, upload: FileUpload
    ) -> FileRecord:
        """Upload to the provider, attach to the assistant, then record locally.

        The provider upload is not rolled back when a later step fails; the
        ``PartialWriteError`` carries the stranded ``file_id``.
        """
        self._validate(upload)
        uploaded = await self._client.upload_file(
            credentials, upload.filename, upload.content, upload.content_type, self.purpose
        )
        logger.info("File uploaded", data={"file_id": uploaded.id, "size": upload.size})

        try:
            await self._client.attach_file_to_assistant(credentials, assistant_id, uploaded.id)
        except ProviderError as exc:
            logger.error("Uploaded file could not be attached", data={"file_id": uploaded.id})
            raise PartialWriteError("attach_file", ["upload_file"], exc, file_id=uploaded.id) from exc

        return await self._record(
            owner,
            ["upload_file", "attach_file"],
            assistant_id=assistant_id,
            file_id=uploaded.id,
            filename=upload.filename,
            size=upload.size,
            content_type=upload.content_type,
        )

    async def attach_file(
        self, owner: str, credentials: CredentialSource, assistant_id: str, file_id: str
    ) -> FileRecord:
        """Attach a file that already exists at the provider and record the binding."""
        async with transaction(self._sf) as session:
            if await FileBindingRepository(session).get(owner, file_id=file_id) is not None:
                raise ConflictError("File is already attached", file_id=file_id)

        provider_file = await self._client.get_file(credentials, file_id)
        await self._client.attach_file_to_assistant(credentials, assistant_id, file_id)
        logger.info("File attached", data={"file_id": file_id, "assistant_id": assistant_id})

        return await self._record(
            owner,
            ["attach_file"],
            assistant_id=assistant_id,
            file_id=file_id,
            filename=provider_file.filename or file_id,
            size=provider_file.size or 0,
            content_type=None,
        )

    async def remove_file(self, owner: str, credentials: CredentialSource, file_id: str) -> None:
        """Detach from the assistant and forget the binding; the provider file stays."""
        binding = await self._find(owner, file_id)
        await self._detach(credentials, binding.assistant_id, file_id)
        await self._forget(owner, file_id, ["detach_file"])
        logger.info("File detached", data={"file_id": file_id})

    async def delete_file(self, owner: str, credentials: CredentialSource, file_id: str) -> None:
        """Detach, delete at the provider, then drop the local binding.

        Stops at the first failing step. Deleting a file that has no local
        binding (including a second delete) raises ``NotFoundError``.
        """
        binding = await self._find(owner, file_id)
        await self._detach(credentials, binding.assistant_id, file_id)

        try:
            await self._client.delete_file(credentials, file_id)
        except ProviderError as exc:
            if not exc.is_not_found:
                raise PartialWriteError("delete_file", ["detach_file"], exc, file_id=file_id) from exc
            logger.info("File already gone at provider", data={"file_id": file_id})

        await self._forget(owner, file_id, ["detach_file", "delete_file"])
        logger.info("File deleted", data={"file_id": file_id})

    async def _find(self, owner: str, file_id: str) -> FileRecord:
        async with transaction(self._sf) as session:
            binding = await FileBindingRepository(session).find(owner, file_id=file_id)
            return FileRecord.model_validate(binding)

    async def _detach(self, credentials: CredentialSource, assistant_id: str, file_id: str) -> None:
        try:
            await self._client.detach_file_from_assistant(credentials, assistant_id, file_id)
        except ProviderError as exc:
            if not exc.is_not_found:
                raise
            logger.info("File already detached at provider", data={"file_id": file_id})

    async def _record(self, owner: str, completed: list[str], **values) -> FileRecord:
        try:
            async with transaction(self._sf) as session:
                binding = await FileBindingRepository(session).insert(owner, **values)
                return FileRecord.model_validate(binding)
        except (ConflictError, SQLAlchemyError) as exc:
            logger.error("File binding not recorded", data={"file_id": values.get("file_id")})
            raise PartialWriteError("record_file", completed, exc, file_id=values.get("file_id")) from exc

    async def _forget(self, owner: str, file_id: str, completed: list[str]) -> None:
        try:
            async with transaction(self._sf) as session:
                await FileBindingRepository(session).delete(owner, file_id=file_id)
        except SQLAlchemyError as exc:
            raise PartialWriteError("remove_file_record", completed, exc, file_id=file_id) from exc
