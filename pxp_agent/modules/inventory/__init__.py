from pxp_agent.modules.inventory.module import InventoryModule

__all__ = ["InventoryModule"]
