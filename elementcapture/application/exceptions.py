class CaptureInputError(ValueError):
    """Raised when the selected element cannot be captured (missing, empty or oversized)."""
    pass


class RendererError(RuntimeError):
    """Raised when the layout engine or rasterizer fails for a single request."""
    pass


class LayoutEngineInitError(RendererError):
    """Raised when the layout engine cannot be initialized."""
    pass


class ResourceFetchError(RuntimeError):
    """Raised when a stylesheet, font or image cannot be fetched."""
    pass
