import asyncio
from typing import Callable, Optional

from . import api
from .client import CloudClient
from .errors import CloudDriveError, InvalidStateError, user_message
from .events import Notifier, Publisher
from .item_tree import ItemTree
from .models import UploadJob, UploadPayload, UploadPhase, UploadStatus
from .utils import get_logger

logger = get_logger("clouddrive.upload")


class UploadPipeline:
    """
    Drives one upload at a time: idle -> ticking -> finalizing -> done|failed -> idle.

    Progress during ticking is a local timer for the indicator only. The file
    goes over the wire in a single request once progress reaches
    ``threshold``. A single task slot holds the tick timer, the finalize call
    and the delayed clear of the 100% indicator.
    """

    def __init__(
        self,
        client: CloudClient,
        tree: ItemTree,
        notifier: Notifier,
        *,
        tick_interval: float = 0.2,
        step: int = 10,
        threshold: int = 90,
        clear_delay: float = 1.0,
    ) -> None:
        self._client = client
        self._tree = tree
        self._notifier = notifier
        self.tick_interval = tick_interval
        self.step = step
        self.threshold = threshold
        self.clear_delay = clear_delay
        self._job: Optional[UploadJob] = None
        self._progress = 0
        self._task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._changes: Publisher[UploadStatus] = Publisher()

    @property
    def phase(self) -> UploadPhase:
        return self._job.phase if self._job is not None else UploadPhase.IDLE

    @property
    def active(self) -> bool:
        return self._job is not None

    def status(self) -> UploadStatus:
        name = self._job.payload.name if self._job is not None else None
        return UploadStatus(phase=self.phase, progress=self._progress, name=name)

    def subscribe(self, fn: Callable[[UploadStatus], None]) -> Callable[[], None]:
        return self._changes.subscribe(fn)

    def _publish(self) -> None:
        self._changes.publish(self.status())

    def start(self, payload: UploadPayload, target_parent_id: Optional[str]) -> bool:
        """Begin an upload. Returns False (and changes nothing) if one is already active."""
        if self._job is not None:
            logger.info("Upload of %s ignored: another upload is in progress", payload.name)
            return False
        if not self._tree.is_open:
            raise InvalidStateError("Uploads require an open session. Log in first.")

        self._stop_timer()
        self._job = UploadJob(payload=payload, target_parent_id=target_parent_id)
        self._progress = 0
        self._idle.clear()
        self._publish()
        self._task = asyncio.get_running_loop().create_task(self._run(self._job))
        return True

    def cancel(self) -> None:
        """Abandon the current job (if any) and clear the indicator."""
        self._stop_timer()
        if self._job is not None:
            logger.info("Upload of %s cancelled", self._job.payload.name)
        self._job = None
        self._progress = 0
        self._idle.set()
        self._publish()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    def _stop_timer(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, job: UploadJob) -> None:
        try:
            await self._transfer(job)
        finally:
            # Still current here only if _transfer raised something unhandled.
            if self._job is job:
                logger.error("Upload of %s aborted", job.payload.name)
                self._job = None
                self._progress = 0
                self._idle.set()
                self._publish()

    async def _transfer(self, job: UploadJob) -> None:
        while job.progress < self.threshold:
            await asyncio.sleep(self.tick_interval)
            job.progress = min(job.progress + self.step, 100)
            self._progress = job.progress
            self._publish()

        job.phase = UploadPhase.FINALIZING
        self._publish()
        owner_id = self._tree.owner_id
        credential = self._tree.credential
        try:
            item = await api.upload_file(self._client, credential, owner_id, job.payload, job.target_parent_id)
        except CloudDriveError as exc:
            logger.warning("Upload of %s failed: %s", job.payload.name, exc)
            job.phase = UploadPhase.FAILED
            self._publish()
            self._notifier.error(user_message(exc, "Upload failed"))
            self._job = None
            self._progress = 0
            self._idle.set()
            self._publish()
            return

        job.phase = UploadPhase.DONE
        job.progress = 100
        self._progress = 100
        if self._tree.is_open and self._tree.owner_id == owner_id:
            self._tree.append(item)
        self._publish()
        self._notifier.success("File uploaded successfully")
        self._job = None
        self._idle.set()
        self._publish()

        await asyncio.sleep(self.clear_delay)
        self._progress = 0
        self._publish()
