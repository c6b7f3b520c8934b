from pxp_agent.modules.status.module import StatusModule

__all__ = ["StatusModule"]
