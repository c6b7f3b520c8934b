"""PXP Agent — message-driven automation agent.

The agent receives requests from a message broker, routes each one to a
module action, and answers the requester with exactly one response.

Architecture layers (bottom to top):
    1. Modules    — built-in handlers and external executables on disk
    2. Registry   — immutable name → module mapping built at startup
    3. Protocol   — request envelope models and validation
    4. Dispatcher — validate, route, execute, respond
    5. Transport  — broker connector (injected collaborator)
    6. Agent/CLI  — startup wiring and command line
"""

__version__ = "0.1.0"

from pxp_agent.agent import Agent
from pxp_agent.dispatcher import RequestDispatcher
from pxp_agent.modules.registry import ModuleRegistry

__all__ = [
    "__version__",
    "Agent",
    "RequestDispatcher",
    "ModuleRegistry",
]
