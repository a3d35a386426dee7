from cimaise.services.imaging.encoder import ImageEncoder, PillowEncoder, RenderedImage

__all__ = ["ImageEncoder", "PillowEncoder", "RenderedImage"]
