"""wikisage: query understanding and knowledge retrieval for a memory-plus-encyclopedia assistant"""

__version__ = "0.1.0"
__author__ = "wikisage contributors"
__powered_by__ = "Wikipedia + local TF-IDF memory"

from .agent import SageAgent
from .conversation import SessionState
from .responses import Response

__all__ = ["SageAgent", "SessionState", "Response", "__version__"]
