from studybuddy.config.loader import get_config_path, load_config, save_config
from studybuddy.config.schema import StudyBuddyConfig

__all__ = ["StudyBuddyConfig", "get_config_path", "load_config", "save_config"]
