"""Concurrent retrieval of a task and all of its subtasks."""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Optional

from services.errors import UnexpectedError
from services.task_models import RawTaskNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class _NodeFetch:
    """The two halves of one node's fetch, joined before the node is wired in."""

    def __init__(self, task_id: str, slots: Optional[dict] = None):
        self.task_id = task_id
        # parent's id -> ChildRef mapping, None for the root
        self.slots = slots
        self.task = None
        self.history = None
        self.outstanding = 2


class TaskTreeFetcher:
    """Fetch a task tree with a bounded pool of worker threads.

    Each node needs two requests (task body and time in status). Both are
    submitted together, and a node's subtasks are submitted as soon as the
    node itself is known, so every level of the tree is fetched in parallel.
    Worker threads only do I/O and parsing; the tree is assembled on the
    calling thread.
    """

    def __init__(self, client, max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers

    def fetch_tree(self, task_id: str, workspace_id: Optional[str] = None) -> RawTaskNode:
        """Fetch ``task_id`` and every subtask below it.

        Args:
            task_id: Root task id (a custom id when ``workspace_id`` is given)
            workspace_id: Workspace that scopes custom ids, root only

        Returns:
            The root RawTaskNode with every ChildRef resolved

        Raises:
            ClickUpServiceError: the first failure anywhere in the tree. No
                partial tree is returned.
        """
        logger.info(
            f"Fetching task tree {task_id} with up to {self.max_workers} concurrent requests"
        )
        started = time.monotonic()
        root = None
        node_count = 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            pending = {}

            def submit(fetch: _NodeFetch, ws: Optional[str]):
                pending[executor.submit(self.client.fetch_task, fetch.task_id, ws)] = (fetch, "task")
                pending[executor.submit(self.client.fetch_status_history, fetch.task_id, ws)] = (fetch, "history")

            submit(_NodeFetch(task_id), workspace_id)

            try:
                while pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        fetch, part = pending.pop(future)
                        result = future.result()
                        setattr(fetch, part, result)
                        fetch.outstanding -= 1
                        if fetch.outstanding:
                            continue

                        node = self._assemble(fetch)
                        node_count += 1
                        if fetch.slots is None:
                            root = node

                        slots = self._slots_for(node)
                        for child in node.children:
                            submit(_NodeFetch(child.id, slots), None)
            except Exception as e:
                for future in pending:
                    future.cancel()
                logger.warning(
                    f"Aborting fetch of task {task_id} after {node_count} nodes: {e!r}"
                )
                raise

        self._check_resolved(root)
        logger.info(
            f"Fetched task tree {task_id} ({node_count} nodes) "
            f"in {time.monotonic() - started:.2f}s"
        )
        return root

    @staticmethod
    def _assemble(fetch: _NodeFetch) -> RawTaskNode:
        node = fetch.task
        node.attach_status_history(fetch.history)
        if fetch.slots is not None:
            slot = fetch.slots.get(node.id)
            if slot is None:
                raise UnexpectedError(
                    f"Fetched task {node.id} matches no subtask reference "
                    f"(requested {fetch.task_id})"
                )
            slot.resolve(node)
        logger.debug(f"Fetched task {node.id} with {len(node.children)} subtasks")
        return node

    @staticmethod
    def _slots_for(node: RawTaskNode) -> dict:
        slots = {}
        for child in node.children:
            if child.id in slots:
                raise UnexpectedError(f"Task {node.id} lists subtask {child.id} twice")
            slots[child.id] = child
        return slots

    @staticmethod
    def _check_resolved(root: Optional[RawTaskNode]) -> None:
        if root is None:
            raise UnexpectedError("Task tree fetch finished without a root task")
        for node in root.iter_nodes():
            for child in node.children:
                if child.resolved is None:
                    raise UnexpectedError(
                        f"Subtask {child.id} of {node.id} was never resolved"
                    )
