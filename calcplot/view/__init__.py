from .view_widget import PlotViewWidget

__all__ = ["PlotViewWidget"]
