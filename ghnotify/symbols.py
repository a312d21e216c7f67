"""Nerd Font glyphs used in status bar output."""

# Notification type symbols
PULL_REQUEST = "\uf126"
ISSUE = "\uf188"
RELEASE = "\uf135"
REPOSITORY = "\uf07c"
DEFAULT_NOTIF = "\uf0f6"

# Reason/action symbols
REVIEW_REQUESTED = "\uf06e"
ASSIGN = "\uf08d"
MENTION = "\uf075"
AUTHOR = "\uf040"
STATE_CHANGE = "\uf021"
COMMIT = "\uf417"

# Status symbols
SUCCESS = "\uf00c"
WARNING = "\uf071"
ERROR = "\uf00d"
INFO = "\uf129"

# Brand symbols
GITHUB = "\ue709"