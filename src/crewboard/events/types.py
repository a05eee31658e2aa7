"""Activity type constants.

Learn: Centralizing activity types as constants prevents typos and
makes it easy to discover everything that shows up in a project feed.
"""

# ─── Project lifecycle ───────────────────────────────────

PROJECT_CREATED = "project.created"
PROJECT_UPDATED = "project.updated"

# ─── Membership ──────────────────────────────────────────

MEMBER_ADDED = "member.added"
MEMBER_REMOVED = "member.removed"
MEMBER_ROLE_CHANGED = "member.role_changed"

# ─── Tasks ───────────────────────────────────────────────

TASK_CREATED = "task.created"
TASK_UPDATED = "task.updated"
TASK_DELETED = "task.deleted"
TASK_ASSIGNED = "task.assigned"
TASK_UNASSIGNED = "task.unassigned"
