from canopy.graph.context import ContextAssembler
from canopy.graph.search import search
from canopy.graph.seed import create_object_root

__all__ = ["ContextAssembler", "create_object_root", "search"]
