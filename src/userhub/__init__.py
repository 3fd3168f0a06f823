"""
UserHub: a user directory served over the Model Context Protocol.

Two cooperating processes: a capability host that exposes user
records as resources, tools and prompts, and an interactive session
driver that discovers and invokes them.
"""

import os

__version__ = "0.1.0"

USERHUB_HOME = os.environ.get("USERHUB_HOME", "~/.userhub")
