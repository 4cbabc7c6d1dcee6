# nestprep/config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


def _env_bool(name, default):
    return os.getenv(name, "1" if default else "0").strip().lower() in ("1", "true", "yes", "on")


# Conversion defaults; every value can be overridden per request or per CLI call
STRIP_HEIGHT = float(os.getenv('NESTPREP_STRIP_HEIGHT', 6000))
SPACING = float(os.getenv('NESTPREP_SPACING', 5))
ARC_SEGMENTS = int(os.getenv('NESTPREP_ARC_SEGMENTS', 32))
SPLINE_SEGMENTS = int(os.getenv('NESTPREP_SPLINE_SEGMENTS', 100))  # splines need many segments to keep edges short
TOLERANCE = float(os.getenv('NESTPREP_TOLERANCE', 0.5))  # contour endpoint matching distance
ALLOW_ROTATIONS = _env_bool('NESTPREP_ALLOW_ROTATIONS', True)
ROTATION_STEPS = int(os.getenv('NESTPREP_ROTATION_STEPS', 4))  # accepted for compatibility, never consumed
AUTO_CLOSE = _env_bool('NESTPREP_AUTO_CLOSE', True)
PROBLEM_NAME = os.getenv('NESTPREP_PROBLEM_NAME', 'dxf_conversion')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE = os.getenv('LOG_FILE', 'error.log')
UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', '')  # empty -> <instance_path>/uploads
MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', 32 * 1024 * 1024))
