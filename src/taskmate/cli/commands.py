# src/taskmate/cli/commands.py

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable

from ..auth.permissions import can_mutate
from ..core.state import AppContext
from ..tasks.task_models import Task, TaskDraft, TaskStatus, parse_day

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppContext, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

_ASSIGNMENT_RE = re.compile(r'(\w+)=("(?:[^"\\]|\\.)*"|.*?)(?=\s+\w+=|$)')


class CommandRegistry:
    """Slash-command registry used by the console front end (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        ctx: AppContext,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        # Never log args: /login carries a token.
        logger.debug("Handling /%s (%d args)", name, len(args))
        return await handler(ctx, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering helpers ----


def _user_label(ctx: AppContext, user_id: str | None, name: str | None = None) -> str:
    if name:
        return name
    if not user_id:
        return "unknown"
    for user in ctx.sync.users:
        if user.id == user_id:
            return user.name or user.email or user_id
    profile = ctx.profile.profile
    if profile is not None and profile.id == user_id:
        return profile.name or user_id
    return user_id


def format_task_line(ctx: AppContext, task: Task) -> str:
    due = task.due_date.isoformat() if task.due_date else "no due date"
    creator = task.created_by
    owner = _user_label(ctx, creator.id if creator else None, creator.name if creator else None)
    mine = " *" if can_mutate(task, ctx.session.current_identity()) else ""
    return f"[{task.id[:8]}] {task.title} (due {due}, by {owner}){mine}"


def format_task_details(ctx: AppContext, task: Task) -> str:
    assigned = task.assigned_user
    lines = [
        f"Task {task.id}",
        f"  Title: {task.title}",
        f"  Description: {task.description or '-'}",
        f"  Status: {task.status.value}",
        f"  Due: {task.due_date.isoformat() if task.due_date else '-'}",
        f"  Created by: {_user_label(ctx, task.creator_id, task.created_by.name if task.created_by else None)}",
        f"  Assigned to: {_user_label(ctx, assigned.id, assigned.name) if assigned else '-'}",
        f"  You can edit: {'yes' if can_mutate(task, ctx.session.current_identity()) else 'no'}",
    ]
    return "\n".join(lines)


def _resolve_task(ctx: AppContext, raw: str) -> tuple[Task | None, str | None]:
    matches = ctx.cache.find_by_prefix(raw)
    if not matches:
        return None, f"No task matches {raw!r}. Use /list to see task ids."
    if len(matches) > 1:
        return None, f"Task id {raw!r} is ambiguous ({len(matches)} matches)."
    return matches[0], None


def _require_session(ctx: AppContext) -> str | None:
    if not ctx.session.is_authenticated:
        return "Not logged in. Use /login <token>."
    return None


def parse_assignments(text: str) -> dict[str, str]:
    """
    Parse `field=value` pairs for /edit.

    An unquoted value runs until the next `word=`, so a value that itself
    contains `=` must be double-quoted: description="set a=b".
    """
    changes: dict[str, str] = {}
    for key, value in _ASSIGNMENT_RE.findall(text):
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = re.sub(r"\\(.)", r"\1", value[1:-1])
        changes[key] = value
    return changes


# ---- commands ----


async def cmd_help(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_status(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = ctx.session.current_identity()
    task_filter = ctx.filters.task_filter
    return (
        "Status:\n"
        f"  Server: {getattr(ctx.settings, 'api_url', '?')}\n"
        f"  Session: {'logged in as ' + identity.subject_id if identity else 'logged out'}\n"
        f"  Filter: status={task_filter.status.value if task_filter.status else 'any'} "
        f"due={task_filter.due_date.isoformat() if task_filter.due_date else 'any'}\n"
        f"  Sort: {ctx.filters.sort.value}\n"
        f"  Cached tasks: {len(ctx.cache)}"
    )


async def cmd_login(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /login <token>"
    identity = ctx.session.establish(args[0])
    if identity is None:
        return "Login failed: the token is malformed or expired."
    await ctx.sync.wait_idle()
    return f"Logged in as {_user_label(ctx, identity.subject_id)}."


async def cmd_logout(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not ctx.session.teardown():
        return "Already logged out."
    return "Session closed."


async def cmd_whoami(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = ctx.session.current_identity()
    if identity is None:
        return "Not logged in."
    profile = ctx.profile.profile
    if profile is None:
        return f"User id: {identity.subject_id} (profile not loaded)"
    return f"Name: {profile.name or 'User'}\nEmail: {profile.email or '-'}\nUser id: {profile.id}"


async def cmd_list(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if err := _require_session(ctx):
        return err
    pending, completed = ctx.cache.partition()
    arrow = "ascending" if ctx.filters.sort.value == "asc" else "descending"
    lines = [f"Pending Tasks ({len(pending)}, due date {arrow}):"]
    lines += [f"  {format_task_line(ctx, t)}" for t in pending] or ["  (none)"]
    lines.append(f"Completed Tasks ({len(completed)}):")
    lines += [f"  {format_task_line(ctx, t)}" for t in completed] or ["  (none)"]
    lines.append("(* = created by you)")
    return "\n".join(lines)


async def cmd_show(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if err := _require_session(ctx):
        return err
    if not args:
        return "Usage: /show <task id>"
    task, err = _resolve_task(ctx, args[0])
    if task is None:
        return err or ""
    return format_task_details(ctx, task)


async def cmd_refresh(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if err := _require_session(ctx):
        return err
    if await ctx.sync.refresh():
        return await cmd_list(ctx, [], emit)
    return "Tasks were not refreshed."


async def cmd_filter(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /filter                        -> show the current filter
    /filter status Pending|Completed|any
    /filter due YYYY-MM-DD|any
    """
    if len(args) < 2:
        task_filter = ctx.filters.task_filter
        return (
            f"Filter: status={task_filter.status.value if task_filter.status else 'any'} "
            f"due={task_filter.due_date.isoformat() if task_filter.due_date else 'any'}\n"
            "Usage: /filter status <Pending|Completed|any> | /filter due <YYYY-MM-DD|any>"
        )

    field = {"status": "status", "due": "due_date", "duedate": "due_date"}.get(args[0].lower())
    if field is None:
        return f"Unknown filter {args[0]!r}. Use status or due."
    try:
        ctx.filters.set_filter(field, args[1])
    except ValueError as e:
        return f"Invalid filter value: {e}"
    await ctx.sync.wait_idle()
    return await cmd_list(ctx, [], emit)


async def cmd_sort(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    ctx.filters.toggle_sort()
    await ctx.sync.wait_idle()
    return await cmd_list(ctx, [], emit)


async def cmd_add(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/add title | description | YYYY-MM-DD [| Pending|Completed] [| assignee id]"""
    if err := _require_session(ctx):
        return err
    fields = [f.strip() for f in " ".join(args).split("|")]
    if len(fields) < 3 or not fields[0] or not fields[2]:
        return "Usage: /add title | description | YYYY-MM-DD [| Pending|Completed] [| assignee id]"

    try:
        due = parse_day(fields[2])
        status = TaskStatus.parse(fields[3]) if len(fields) > 3 and fields[3] else TaskStatus.PENDING
    except ValueError as e:
        return f"Invalid task: {e}"
    if due is None:
        return "Invalid task: a due date is required."

    draft = TaskDraft(
        title=fields[0],
        description=fields[1],
        due_date=due,
        status=status,
        assigned_user_id=(fields[4] or None) if len(fields) > 4 else None,
    )
    task = await ctx.sync.create_task(draft)
    if task is None:
        return "Task was not added."
    return format_task_line(ctx, task)


async def cmd_edit(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/edit <id> title=... description=... due_date=YYYY-MM-DD status=... assigned_user=<id>"""
    if err := _require_session(ctx):
        return err
    if len(args) < 2:
        return (
            "Usage: /edit <id> field=value ...\n"
            "Fields: title, description, due_date, status, assigned_user\n"
            "Quote a value that contains '=': description=\"a=b\""
        )
    task, err = _resolve_task(ctx, args[0])
    if task is None:
        return err or ""
    changes = parse_assignments(" ".join(args[1:]))
    if not changes:
        return "Nothing to change. Use field=value pairs."
    updated = await ctx.sync.update_task(task.id, changes)
    if updated is None:
        return "Task was not updated."
    return format_task_details(ctx, updated)


async def _set_status(ctx: AppContext, args: list[str], status: TaskStatus) -> str:
    if err := _require_session(ctx):
        return err
    if not args:
        return "Usage: /done <id> | /undo <id>"
    task, err = _resolve_task(ctx, args[0])
    if task is None:
        return err or ""
    updated = await ctx.sync.set_status(task.id, status)
    if updated is None:
        return "Task was not updated."
    return format_task_line(ctx, updated)


async def cmd_done(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _set_status(ctx, args, TaskStatus.COMPLETED)


async def cmd_undo(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _set_status(ctx, args, TaskStatus.PENDING)


async def cmd_delete(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if err := _require_session(ctx):
        return err
    if not args:
        return "Usage: /delete <id>"
    task, err = _resolve_task(ctx, args[0])
    if task is None:
        return err or ""
    if not await ctx.sync.delete_task(task.id):
        return "Task was not deleted."
    return f"Deleted {task.title!r}."


async def cmd_users(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if err := _require_session(ctx):
        return err
    users = await ctx.sync.load_users()
    if not users:
        return "No users."
    lines = ["Users:"]
    for user in users:
        lines.append(f"  {user.id}  {user.name or '-'} <{user.email or '-'}>")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show server, session, filter and sort.")
registry.register("login", cmd_login, help_text="Start a session: /login <token>.")
registry.register("logout", cmd_logout, help_text="End the session and forget the token.")
registry.register("whoami", cmd_whoami, help_text="Show your profile.", aliases=["me"])
registry.register("list", cmd_list, help_text="Show cached tasks (Pending / Completed).", aliases=["ls"])
registry.register("show", cmd_show, help_text="Task details: /show <id>.")
registry.register("refresh", cmd_refresh, help_text="Fetch tasks again with the current filter.")
registry.register(
    "filter", cmd_filter, help_text="Filter: /filter status <Pending|Completed|any> | /filter due <date|any>."
)
registry.register("sort", cmd_sort, help_text="Toggle due date sort (asc/desc).")
registry.register("add", cmd_add, help_text="Add: /add title | description | YYYY-MM-DD [| status] [| assignee].")
registry.register("edit", cmd_edit, help_text="Update: /edit <id> field=value ...")
registry.register("done", cmd_done, help_text="Mark as Complete: /done <id>.")
registry.register("undo", cmd_undo, help_text="Mark as Pending: /undo <id>.")
registry.register("delete", cmd_delete, help_text="Delete: /delete <id>.", aliases=["rm"])
registry.register("users", cmd_users, help_text="List users (for assignment).")
