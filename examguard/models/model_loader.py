"""
Model Loader - Lazy loading and caching of landmark models
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

# Default model directory (relative to this file's directory)
MODELS_DIR = os.path.join(os.path.dirname(__file__), "weights")

PREDICTOR_FILE = "shape_predictor_68_face_landmarks.dat"


def find_predictor_path(explicit_path: Optional[str] = None) -> Optional[str]:
    """
    Locate the dlib 68-point landmark model.

    Search order: explicit path, $PROCTOR_LANDMARK_MODEL, package weights
    directory, current directory.
    """
    possible_paths = [
        explicit_path,
        os.environ.get("PROCTOR_LANDMARK_MODEL"),
        os.path.join(MODELS_DIR, PREDICTOR_FILE),
        PREDICTOR_FILE
    ]
    for path in possible_paths:
        if path and os.path.exists(path):
            return path
    return None


@lru_cache(maxsize=1)
def get_dlib_predictor(explicit_path: Optional[str] = None):
    """
    Get dlib shape predictor for 68-point facial landmarks.

    Model file: shape_predictor_68_face_landmarks.dat
    Download from: http://dlib.net/files/shape_predictor_68_face_landmarks.dat.bz2

    Returns:
        dlib.shape_predictor instance
    """
    import dlib

    path = find_predictor_path(explicit_path)
    if path is None:
        raise FileNotFoundError(
            f"{PREDICTOR_FILE} not found. "
            f"Download from http://dlib.net/files/shape_predictor_68_face_landmarks.dat.bz2 "
            f"and place in {MODELS_DIR} or set PROCTOR_LANDMARK_MODEL"
        )
    logger.info(f"Loading dlib predictor from: {path}")
    return dlib.shape_predictor(path)


def check_models() -> dict:
    """
    Check which detection backends are available.

    Returns:
        Dict with availability per backend
    """
    status = {
        "dlib": False,
        "landmark_model": find_predictor_path() is not None,
        "webrtcvad": False
    }
    try:
        import dlib  # noqa: F401
        status["dlib"] = True
    except ImportError:
        pass
    try:
        import webrtcvad  # noqa: F401
        status["webrtcvad"] = True
    except ImportError:
        pass
    return status
