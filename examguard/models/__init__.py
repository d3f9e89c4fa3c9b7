"""Model loading utilities"""

from .model_loader import check_models, find_predictor_path, get_dlib_predictor

__all__ = ["check_models", "find_predictor_path", "get_dlib_predictor"]
