"""
Age-specific maternal mortality rates from survey sibling histories
(the sisterhood method).
"""

import importlib.metadata

__version__ = importlib.metadata.version("mmrates")
