__version__ = "1.0.0"
__all__ = ["exceptions", "linalg_utils", "numpy_npls", "tensor_utils"]

from . import exceptions, linalg_utils, numpy_npls, tensor_utils
