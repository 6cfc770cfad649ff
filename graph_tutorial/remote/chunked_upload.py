"""Large-file upload through a Graph upload session, one byte-range slice at a time."""

from typing import Callable, Iterator

from graph_tutorial.config import SLICE_SIZE_UNIT
from graph_tutorial.errors import GraphTutorialError
from graph_tutorial.remote.graph_models import UploadResult, UploadSessionInfo
from graph_tutorial.remote.protocol import GraphRemote
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.chunked_upload")

ProgressCallback = Callable[[int, int], None]


def iter_slices(total: int, slice_size: int) -> Iterator[tuple[int, int]]:
    """Yield (start, end_exclusive) for consecutive slices; the last one may be shorter."""
    for start in range(0, total, slice_size):
        yield start, min(start + slice_size, total)


def validate_slice_size(slice_size: int) -> None:
    if slice_size <= 0 or slice_size % SLICE_SIZE_UNIT != 0:
        raise ValueError(f"Slice size must be a positive multiple of {SLICE_SIZE_UNIT} bytes (320 KiB), got {slice_size}")


class ChunkedUploadCoordinator:
    """Uploads a payload in strictly ordered slices and reports a success/failure verdict.

    A failing slice ends the upload: no later slice is sent, nothing is retried, and the
    upload session is cancelled. Retrying is up to the caller.
    """

    def __init__(self, conflict_behavior: str = "replace"):
        self._conflict_behavior = conflict_behavior

    async def upload(
        self,
        session: GraphRemote,
        payload: bytes,
        target_path: str,
        slice_size_bytes: int,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        validate_slice_size(slice_size_bytes)
        total = len(payload)
        if total == 0:
            raise ValueError("Cannot upload an empty payload through an upload session")
        log = logger.bind(target_path=target_path, total_bytes=total, slice_size=slice_size_bytes)

        try:
            upload_session = await session.create_upload_session(target_path, conflict_behavior=self._conflict_behavior)
        except GraphTutorialError as e:
            log.error("chunked_upload.session_error", error=str(e))
            return UploadResult(succeeded=False, total_bytes=total, error=str(e))
        log.info("chunked_upload.start", slices=-(-total // slice_size_bytes))

        bytes_sent = 0
        for start, end in iter_slices(total, slice_size_bytes):
            try:
                response = await session.upload_slice(upload_session, payload[start:end], start, total)
            except GraphTutorialError as e:
                log.error("chunked_upload.slice_error", start=start, end=end - 1, error=str(e))
                await self._cancel(session, upload_session)
                return UploadResult(succeeded=False, bytes_sent=bytes_sent, total_bytes=total, error=str(e))
            except Exception as e:
                log.exception("chunked_upload.slice_unexpected_error", start=start, end=end - 1)
                await self._cancel(session, upload_session)
                error = f"{type(e).__name__}: {e}"
                return UploadResult(succeeded=False, bytes_sent=bytes_sent, total_bytes=total, error=error)
            bytes_sent = end
            if on_progress is not None:
                on_progress(bytes_sent, total)
            if response.completed:
                if bytes_sent < total:
                    # Service finished the item before all bytes were sent
                    error = f"Upload session completed after {bytes_sent} of {total} bytes"
                    log.error("chunked_upload.premature_completion", bytes_sent=bytes_sent)
                    return UploadResult(succeeded=False, bytes_sent=bytes_sent, total_bytes=total, error=error)
                log.info("chunked_upload.complete", item_id=response.item.id)
                return UploadResult(succeeded=True, item_id=response.item.id, bytes_sent=bytes_sent, total_bytes=total)
            log.debug("chunked_upload.slice_sent", bytes_sent=bytes_sent, next_expected=response.nextExpectedRanges)

        error = "Final slice accepted but no item was returned"
        log.error("chunked_upload.no_item", bytes_sent=bytes_sent)
        return UploadResult(succeeded=False, bytes_sent=bytes_sent, total_bytes=total, error=error)

    async def _cancel(self, session: GraphRemote, upload_session: UploadSessionInfo) -> None:
        try:
            await session.cancel_upload_session(upload_session)
        except GraphTutorialError as e:
            logger.warning("chunked_upload.cancel_error", error=str(e))
