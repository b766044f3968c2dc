from certanchor.modules.anchoring.service import AnchoringService, AnchorReceipt

__all__ = ["AnchorReceipt", "AnchoringService"]
