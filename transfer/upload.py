from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import TYPE_CHECKING, Callable, Sequence

from client.errors import BoardError, TransportError, UploadBusyError, ValidationError
from client.schemas import FileType, ShortFile

from .progress import BatchProgress
from .sources import UploadSource

if TYPE_CHECKING:
    from client.http import BoardApiClient

logger = logging.getLogger(__name__)


class UploadPhase(str, Enum):
    IDLE = "idle"
    RESERVING = "reserving"
    TRANSFERRING = "transferring"
    CONFIRMING = "confirming"
    AMBIGUOUS = "ambiguous"
    DONE = "done"
    FAILED = "failed"


_BUSY_PHASES = {
    UploadPhase.RESERVING,
    UploadPhase.TRANSFERRING,
    UploadPhase.CONFIRMING,
    UploadPhase.AMBIGUOUS,
    UploadPhase.DONE,
}


@dataclass(frozen=True)
class UploadState:
    phase: UploadPhase = UploadPhase.IDLE
    progress: int = 0
    file_name: str | None = None
    error: str | None = None

    @property
    def busy(self) -> bool:
        return self.phase in _BUSY_PHASES


@dataclass(frozen=True)
class UploadItem:
    file_type: FileType | str
    source: UploadSource

    @property
    def type_value(self) -> str:
        return getattr(self.file_type, "value", self.file_type)


@dataclass(frozen=True)
class AmbiguousOutcome:
    """A transfer or confirm whose result was not observed.

    Resolved by exactly one read of the short: either the expected file row is
    there (the server finished the work) or the original error stands.
    """

    short_id: int
    file_type: str
    storage_path: str
    file_name: str
    file_size: int
    error: TransportError

    def matches(self, item: ShortFile) -> bool:
        if item.file_type != self.file_type:
            return False
        if item.storage_path:
            return item.storage_path == self.storage_path
        return item.file_name == self.file_name and item.file_size == self.file_size

    def resolve(self, api: "BoardApiClient") -> ShortFile | None:
        try:
            short = api.get_short(self.short_id)
        except BoardError as exc:
            logger.warning("Reconciling read for short %s failed: %s", self.short_id, exc)
            return None
        for item in short.files:
            if self.matches(item):
                return item
        return None


StateListener = Callable[[UploadState], None]
CompleteListener = Callable[[list[ShortFile]], None]


class UploadCoordinator:
    def __init__(
        self,
        api: "BoardApiClient",
        *,
        on_state: StateListener | None = None,
        on_complete: CompleteListener | None = None,
        success_hold_s: float = 1.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api = api
        self._on_state = on_state
        self._on_complete = on_complete
        self._success_hold_s = success_hold_s
        self._sleep = sleep
        self._busy = False
        self._state = UploadState()

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    def _set(self, phase: UploadPhase, progress: int, file_name: str | None = None, error: str | None = None) -> None:
        self._state = UploadState(phase=phase, progress=progress, file_name=file_name, error=error)
        if self._on_state is not None:
            self._on_state(self._state)

    def submit(self, short_id: int, items: Sequence[UploadItem]) -> list[ShortFile]:
        """Upload ``items`` one after another as a single submission.

        Raises ``UploadBusyError`` while another submission is running. On
        failure the state moves to ``failed`` and the error is re-raised.
        """
        if self._busy:
            raise UploadBusyError()
        items = list(items)
        if not items:
            raise ValidationError("Please select a file to upload.")

        self._busy = True
        try:
            try:
                uploaded = self._run(short_id, items)
            except BoardError as exc:
                logger.warning("Upload for short %s failed: %s", short_id, exc.message)
                self._set(UploadPhase.FAILED, self._state.progress, self._state.file_name, exc.message)
                raise
            self._set(UploadPhase.DONE, 100)
            if self._success_hold_s > 0:
                self._sleep(self._success_hold_s)
            self._set(UploadPhase.IDLE, 0)
        finally:
            self._busy = False

        if self._on_complete is not None:
            self._on_complete(uploaded)
        return uploaded

    def _run(self, short_id: int, items: list[UploadItem]) -> list[ShortFile]:
        progress = BatchProgress([item.source.size for item in items])
        uploaded: list[ShortFile] = []
        for index, item in enumerate(items):
            uploaded.append(self._upload_one(short_id, index, item, progress))
        progress.finish()
        return uploaded

    def _upload_one(self, short_id: int, index: int, item: UploadItem, progress: BatchProgress) -> ShortFile:
        source = item.source
        file_type = item.type_value

        self._set(UploadPhase.RESERVING, progress.percent, source.name)
        logger.info("Reserving %s upload for short %s: %s (%s bytes)", file_type, short_id, source.name, source.size)
        target = self._api.reserve_upload(short_id, file_type, source.name, source.size, source.mime_type)

        sent = 0

        def _on_progress(loaded: int, total: int) -> None:
            nonlocal sent
            sent = loaded
            self._set(UploadPhase.TRANSFERRING, progress.update(index, loaded, total), source.name)

        outcome_args = dict(
            short_id=short_id,
            file_type=file_type,
            storage_path=target.storage_path,
            file_name=source.name,
            file_size=source.size,
        )

        self._set(UploadPhase.TRANSFERRING, progress.percent, source.name)
        logger.info("Transferring %s to storage", source.name)
        try:
            self._api.transfer_bytes(target, source, _on_progress)
        except TransportError as exc:
            if sent < source.size:
                raise
            # Storage may hold the object; confirm checks it server-side.
            logger.info("Storage response for %s lost after all bytes were sent (%s)", source.name, exc.kind)
        progress.complete_file(index)

        self._set(UploadPhase.CONFIRMING, progress.percent, source.name)
        logger.info("Confirming %s at %s", source.name, target.storage_path)
        try:
            return self._api.confirm_upload(
                short_id,
                file_type,
                target.storage_path,
                source.name,
                source.size,
                source.mime_type,
            )
        except TransportError as exc:
            return self._reconcile(AmbiguousOutcome(error=exc, **outcome_args))

    def _reconcile(self, outcome: AmbiguousOutcome) -> ShortFile:
        self._set(UploadPhase.AMBIGUOUS, self._state.progress, outcome.file_name)
        logger.info(
            "Outcome of %s upload for short %s unknown (%s); checking server",
            outcome.file_type,
            outcome.short_id,
            outcome.error.kind,
        )
        record = outcome.resolve(self._api)
        if record is None:
            raise outcome.error
        logger.info("Server has %s (file %s); treating upload as done", outcome.file_name, record.id)
        return record
