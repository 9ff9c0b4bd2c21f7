from .__http import error_envelope_handler, store_error_handler

__all__ = ["error_envelope_handler", "store_error_handler"]
