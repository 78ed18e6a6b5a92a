"""
Importer for task list backups.

Restores a snapshot into a target account:
1. Plan: resolve the target identity, read its lists and work out which
   snapshot lists are missing there. No changes are made.
2. Confirm: the caller decides whether to continue.
3. Execute: read the target lists again, create the ones still missing,
   re-read them if any were created, route each task group to its list by
   display name and create the tasks in their captured order.

Lists are matched by display name, ignoring case, with an exact match
preferred. Source lists with the same name (exactly or ignoring case) share
one target list. Tasks are not de-duplicated: importing twice creates every
task twice. There is no rollback; if a task fails, tasks already created
stay.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional

from todo_backup.api.todo_api import TodoAPI
from todo_backup.backup.snapshot import AccountIdentity, Snapshot, TaskGroup, TodoList

logger = logging.getLogger(__name__)

# Called before each task with (index, total_in_group, title, list_name)
TaskProgressCallback = Callable[[int, int, str, str], None]

# Receives the plan and returns True to go ahead
ConfirmCallback = Callable[["ImportPlan"], bool]

# Receives the plan as soon as it is computed, dry run or not
PlanCallback = Callable[["ImportPlan"], None]


class ListResolutionError(Exception):
    """Raised when a task group has no matching list in the target account."""

    def __init__(self, unresolved: list[str]):
        self.unresolved = unresolved
        names = ", ".join(repr(name) for name in unresolved)
        super().__init__(f"No target list found for: {names}")


def name_key(display_name: str) -> str:
    """Key used to compare list names across accounts."""
    return display_name.casefold()


def find_list_by_name(
    display_name: str, candidates: Iterable[TodoList]
) -> Optional[TodoList]:
    """
    Find the list with the given display name.

    An exact match wins; otherwise the first list whose name matches
    ignoring case is returned.
    """
    fallback = None
    key = name_key(display_name)
    for candidate in candidates:
        if candidate.display_name == display_name:
            return candidate
        if fallback is None and name_key(candidate.display_name) == key:
            fallback = candidate
    return fallback


def missing_list_names(
    source_lists: Iterable[TodoList], target_lists: Iterable[TodoList]
) -> list[str]:
    """
    Source list names with no matching target list, in source order.

    A name is reported once even if several source lists carry it, exactly
    or ignoring case.
    """
    targets = list(target_lists)
    missing: list[str] = []
    seen: set[str] = set()
    for source in source_lists:
        key = name_key(source.display_name)
        if key in seen:
            continue
        seen.add(key)
        if find_list_by_name(source.display_name, targets) is None:
            missing.append(source.display_name)
    return missing


@dataclass
class ImportPlan:
    """
    What an import will do, computed without changing anything.

    Attributes:
        snapshot: Snapshot being imported
        target: Identity of the target account
        target_lists: Lists present in the target when the plan was made
        lists_to_create: Display names that will be created, as of planning.
            execute() checks the target again before creating anything.
    """

    snapshot: Snapshot
    target: AccountIdentity
    target_lists: list[TodoList] = field(default_factory=list)
    lists_to_create: list[str] = field(default_factory=list)

    @property
    def source(self) -> AccountIdentity:
        return self.snapshot.about.identity

    @property
    def list_count(self) -> int:
        return len(self.snapshot.lists)

    @property
    def task_count(self) -> int:
        return self.snapshot.task_count

    def summary(self) -> str:
        """Human-readable description for the confirmation prompt."""
        lines = [
            f"Source account: {self.source}",
            f"Backup created: {self.snapshot.about.backup_created_at or 'unknown'}",
            f"Target account: {self.target}",
            f"Lists in backup: {self.list_count}",
            f"Tasks in backup: {self.task_count}",
            f"Lists to create: {len(self.lists_to_create)}",
        ]
        lines.extend(f"  + {name}" for name in self.lists_to_create)
        return "\n".join(lines)


@dataclass
class ImportResult:
    """
    Outcome of an import.

    Attributes:
        cancelled: True if the confirmation was declined (nothing changed)
        dry_run: True if only the plan was computed (nothing changed)
        lists_created: Display names of the lists created
        tasks_created: Number of tasks created
        tasks_by_list: Tasks created per target list display name
    """

    cancelled: bool = False
    dry_run: bool = False
    lists_created: list[str] = field(default_factory=list)
    tasks_created: int = 0
    tasks_by_list: dict[str, int] = field(default_factory=dict)


class Importer:
    """
    Restores a snapshot into a target account.

    Usage:
        importer = Importer(api, on_plan=print_plan, on_task=print_progress)
        result = importer.run(snapshot, confirm=ask_user)
        if result.cancelled:
            print("Nothing imported")
    """

    def __init__(
        self,
        api: TodoAPI,
        on_task: Optional[TaskProgressCallback] = None,
        on_plan: Optional[PlanCallback] = None,
    ):
        self.api = api
        self.on_task = on_task
        self.on_plan = on_plan

    def plan(self, snapshot: Snapshot) -> ImportPlan:
        """
        Work out what an import would do. Read-only.

        Raises:
            AuthenticationError: If the target token is invalid or expired
        """
        target = self.api.get_identity()
        target_lists = self.api.list_lists()
        lists_to_create = missing_list_names(snapshot.lists, target_lists)

        logger.info(
            f"Import plan: {snapshot.task_count} tasks in {len(snapshot.lists)} "
            f"lists into {target}, {len(lists_to_create)} lists to create"
        )
        return ImportPlan(
            snapshot=snapshot,
            target=target,
            target_lists=target_lists,
            lists_to_create=lists_to_create,
        )

    def run(
        self,
        snapshot: Snapshot,
        confirm: ConfirmCallback,
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Plan, ask for confirmation, then execute.

        Args:
            snapshot: Snapshot to import
            confirm: Called with the plan; a false answer cancels the import
                before any change is made
            dry_run: Stop after planning, without calling confirm

        Returns:
            ImportResult; nothing is changed when cancelled or dry_run is set
        """
        plan = self.plan(snapshot)
        if self.on_plan:
            self.on_plan(plan)

        if dry_run:
            logger.info("Dry run: no changes made")
            return ImportResult(dry_run=True)

        if not confirm(plan):
            logger.info("Import declined: no changes made")
            return ImportResult(cancelled=True)

        return self.execute(plan)

    def execute(self, plan: ImportPlan) -> ImportResult:
        """
        Create missing lists and all tasks of the plan.

        The target lists are read again first, so lists added to the account
        since planning are reused rather than created twice. Every task
        group is routed before the first task is created, so an unresolvable
        group aborts the import with no task created.

        Raises:
            ListResolutionError: If a group has no matching target list
            TodoAPIError: If any API call fails (earlier creations remain)
        """
        result = ImportResult()
        target_lists = self.api.list_lists()
        lists_to_create = missing_list_names(plan.snapshot.lists, target_lists)
        if lists_to_create != plan.lists_to_create:
            logger.info(
                f"Target lists changed since planning, creating {lists_to_create}"
            )

        for display_name in lists_to_create:
            self.api.create_list(display_name)
            result.lists_created.append(display_name)

        if result.lists_created:
            # Pick up the ids of the lists just created
            target_lists = self.api.list_lists()

        routes = self._route_groups(plan.snapshot, target_lists)

        for group, target_list in routes:
            created = self._import_group(group, target_list)
            result.tasks_created += created
            result.tasks_by_list[target_list.display_name] = (
                result.tasks_by_list.get(target_list.display_name, 0) + created
            )

        logger.info(
            f"Import complete: {len(result.lists_created)} lists and "
            f"{result.tasks_created} tasks created"
        )
        return result

    def _route_groups(
        self, snapshot: Snapshot, target_lists: list[TodoList]
    ) -> list[tuple[TaskGroup, TodoList]]:
        routes: list[tuple[TaskGroup, TodoList]] = []
        unresolved: list[str] = []

        for group in snapshot.task_groups:
            display_name = snapshot.list_name_for(group.source_list_id)
            target_list = find_list_by_name(display_name, target_lists)
            if target_list is None:
                unresolved.append(display_name)
                continue
            routes.append((group, target_list))

        if unresolved:
            logger.error(f"Unresolved lists in target account: {unresolved}")
            raise ListResolutionError(unresolved)

        return routes

    def _import_group(self, group: TaskGroup, target_list: TodoList) -> int:
        total = len(group.tasks)
        logger.debug(f"Importing {total} tasks into '{target_list.display_name}'")

        for index, payload in enumerate(group.tasks, start=1):
            if self.on_task:
                self.on_task(index, total, payload.title, target_list.display_name)
            self.api.create_task(target_list.id, payload)

        return total
