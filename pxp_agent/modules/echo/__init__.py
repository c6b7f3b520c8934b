from pxp_agent.modules.echo.module import EchoModule

__all__ = ["EchoModule"]
