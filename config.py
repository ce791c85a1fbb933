"""Configuration settings for Smart Study Planner."""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (settings, tasks, credentials).

    STUDY_PLANNER_DATA_DIR overrides the platform default, which is useful
    for tests and for running several profiles side by side.

    Returns:
        Path to the user data directory.
    """
    override = os.getenv("STUDY_PLANNER_DATA_DIR", "")
    if override:
        data_dir = Path(override).expanduser()
    elif sys.platform == 'darwin':
        # macOS: ~/Library/Application Support/StudyPlanner
        data_dir = Path.home() / "Library" / "Application Support" / "StudyPlanner"
    elif sys.platform == 'win32':
        # Windows: %APPDATA%/StudyPlanner
        appdata = os.environ.get('APPDATA')
        if appdata:
            data_dir = Path(appdata) / "StudyPlanner"
        else:
            data_dir = Path.home() / "AppData" / "Roaming" / "StudyPlanner"
    else:
        # Linux: ~/.local/share/StudyPlanner
        data_dir = Path.home() / ".local" / "share" / "StudyPlanner"

    # Create directory if it doesn't exist
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except Exception:
        # Fallback to home directory if creation fails
        data_dir = Path.home() / ".studyplanner"
        data_dir.mkdir(parents=True, exist_ok=True)

    return data_dir


# Load environment variables from .env file next to this module
# so it is found regardless of the current working directory
_env_path = Path(__file__).parent / ".env"
load_dotenv(_env_path)

# User data directory (settings, task store, credential file)
USER_DATA_DIR = get_user_data_dir()

# --- Remote services ---
# The authentication service and the user/session-data service are
# deployed separately and configured independently.
AUTH_BASE_URL = os.getenv("AUTH_BASE_URL", "http://localhost:3000")
API_BASE_URL = os.getenv("API_BASE_URL", "https://api.smartstudyplanner.com/v1")

# Web page that runs third-party sign-in and redirects back to localhost
IDENTITY_PROVIDER_URL = os.getenv("IDENTITY_PROVIDER_URL", "https://smartstudyplanner.com")

# --- Local storage ---
SETTINGS_FILE = USER_DATA_DIR / "settings.json"  # Key-value settings
TASK_STORE_FILE = USER_DATA_DIR / "study_tasks.json"  # Single named task store
CREDENTIALS_FILE = USER_DATA_DIR / "credentials.json"  # File secret backend

# Secret store scoping: one service, one record
CREDENTIAL_SERVICE = os.getenv("CREDENTIAL_SERVICE", "com.smartstudyplanner.credentials")
CREDENTIAL_RECORD_KEY = "credentials"

# Well-known settings keys
SETTING_IS_AUTHENTICATED = "isAuthenticated"
SETTING_USER_NAME = "userName"
SETTING_USER_EMAIL = "userEmail"
SETTING_NOTIFICATIONS_ENABLED = "notificationsEnabled"
SETTING_DARK_MODE_ENABLED = "darkModeEnabled"
SETTING_DEFAULT_STUDY_DURATION = "defaultStudyDuration"

# --- User defaults ---
# Study durations are always seconds; minute pickers convert at the edge.
DEFAULT_STUDY_DURATION_SECONDS = 3600
THEME_LIGHT = "light"
THEME_DARK = "dark"
VALID_THEMES = (THEME_LIGHT, THEME_DARK)

# Task priorities and statuses
PRIORITY_LOW = 1
PRIORITY_MEDIUM = 2
PRIORITY_HIGH = 3
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"

# Registration rules
MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = r"[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}"

# --- Focus sessions ---
DEFAULT_FOCUS_TIME_SECONDS = 5400  # 1.5 hours
FOCUS_TICK_SECONDS = 1

# Options: "simulated" or "macos_shortcuts"
FOCUS_PROVIDER = os.getenv("FOCUS_PROVIDER", "simulated")
# Names of user Shortcuts that switch Do Not Disturb on/off (macOS only)
FOCUS_ON_SHORTCUT = os.getenv("FOCUS_ON_SHORTCUT", "Study Focus On")
FOCUS_OFF_SHORTCUT = os.getenv("FOCUS_OFF_SHORTCUT", "Study Focus Off")

# Biometric prompt reasons
BIOMETRIC_LOGIN_REASON = "Log in to your account"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
