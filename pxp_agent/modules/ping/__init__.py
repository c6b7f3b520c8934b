from pxp_agent.modules.ping.module import PingModule

__all__ = ["PingModule"]
