"""
Configuration Management for Motion Coach

Loads and provides access to configuration from config.json.
Allows runtime configuration of tracking, scoring and session parameters.
Supports both plain values and the [value, description] format.
"""

import json
from typing import Dict, Any, Optional, Tuple
from pathlib import Path


class Config:
    """
    Singleton configuration manager that loads from config.json
    """
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        # Config(path) must hand back the same instance, only reloaded.
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config.json. If provided, force reload from
                         that path. If None, load from the default location
                         only on first initialization.
        """
        if config_path is not None:
            self._config_path = str(config_path)
            self.reload()
            return

        if not self._config_data:  # Only load once
            config_path = Path(__file__).parent / "config.json"
            self._config_path = str(config_path)
            self.reload()

    def reload(self):
        """Reload configuration from file."""
        try:
            with open(self._config_path, 'r') as f:
                self._config_data = json.load(f)
            print(f"✓ Loaded configuration from {self._config_path}")
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path}")
            print("  Using default values")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Error parsing config file: {e}")
            print("  Using default values")
            self._config_data = self._get_defaults()

    def save(self):
        """Save current configuration back to file."""
        try:
            with open(self._config_path, 'w') as f:
                json.dump(self._config_data, f, indent=2)
            print(f"✓ Saved configuration to {self._config_path}")
        except OSError as e:
            print(f"✗ Error saving config: {e}")

    def get(self, *keys, default=None) -> Any:
        """
        Get configuration value by key path.
        Handles both plain values and [value, description] pairs.

        Examples:
            config.get('session', 'recording_seconds')  # Returns 30
            config.get('scoring', 'speed_band')         # Returns [100, 300]
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        # [value, "description"] pair; a bare list of numbers is a value
        if isinstance(current, list) and len(current) == 2 and isinstance(current[1], str) \
                and not all(isinstance(x, str) for x in current):
            return current[0]

        return current

    def get_with_description(self, *keys, default=None) -> Tuple[Any, str]:
        """
        Get configuration value AND description.

        Returns:
            Tuple of (value, description) or (default, "")
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return (default, "")

        if isinstance(current, list) and len(current) == 2 and isinstance(current[1], str) \
                and not all(isinstance(x, str) for x in current):
            return (current[0], current[1])

        return (current, "")

    def set(self, *keys, value):
        """
        Set configuration value by key path.

        Example:
            config.set('session', 'recording_seconds', value=60)
        """
        if len(keys) == 0:
            return

        current = self._config_data
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _get_defaults(self) -> Dict:
        """Return default configuration values."""
        return {
            "camera": {
                "index": 0,
                "width": 640,
                "height": 480,
                "fps": 30
            },
            "performance": {
                "max_hands": 2,
                "min_detection_confidence": 0.6,
                "min_tracking_confidence": 0.5,
                "face_sample_interval": 3,
                "face_min_detection_confidence": 0.5
            },
            "display": {
                "flip_horizontal": True,
                "show_camera_window": True,
                "slot_labels": ["Left hand", "Right hand"]
            },
            "session": {
                "calibration_seconds": 5,
                "recording_seconds": 30,
                "countdown_tick_ms": 1000
            },
            "tracking": {
                "composite_landmarks": [0, 5, 17],
                "proximity_threshold_px": 100.0
            },
            "normalization": {
                "guide_center_rel": [0.5, 1.0 / 3.0],
                "guide_radius_rel": 0.2,
                "guide_iod_ratio": 0.5,
                "guide_center_tolerance": 0.5
            },
            "metrics": {
                "trail_length": 45,
                "min_motion_px": 2.0,
                "angle_threshold_rad": 1.0
            },
            "feedback": {
                "low_speed": 100.0,
                "high_speed": 300.0,
                "max_erratic_rate": 7.0,
                "stability_frames": 5,
                "messages": {
                    "no hands detected": "No hands detected",
                    "too little": "Too little - gesture more",
                    "too much": "Too much - slow down",
                    "just right": "Just right"
                }
            },
            "scoring": {
                "distance_band": [2000.0, 8000.0],
                "speed_band": [100.0, 300.0],
                "max_erratic_rate": 7.0,
                "erratic_high": 3.0,
                "erratic_low": 0.5,
                "low_score": 5.0,
                "high_score": 8.0
            },
            "visual_feedback": {
                "enabled": True,
                "show_trails": True,
                "show_guide": True,
                "show_metrics_panel": True,
                "trail_thickness": 2
            }
        }

    @property
    def data(self) -> Dict:
        """Get entire configuration dictionary."""
        return self._config_data


# Global configuration instance
config = Config()


# Convenience functions for common access patterns
def get_tracking_setting(param_name: str, default=None):
    """Get an identity tracking parameter."""
    return config.get('tracking', param_name, default=default)


def get_normalization_setting(param_name: str, default=None):
    """Get a scale normalization / face guide parameter."""
    return config.get('normalization', param_name, default=default)


def get_metrics_setting(param_name: str, default=None):
    """Get a motion metrics parameter."""
    return config.get('metrics', param_name, default=default)


def get_feedback_setting(param_name: str, default=None):
    """Get a live feedback parameter."""
    return config.get('feedback', param_name, default=default)


def get_scoring_setting(param_name: str, default=None):
    """Get a session scoring parameter."""
    return config.get('scoring', param_name, default=default)


def get_session_setting(param_name: str, default=None):
    """Get a session timing parameter."""
    return config.get('session', param_name, default=default)


def get_visual_setting(param_name: str, default=None):
    """Get a visual feedback setting."""
    return config.get('visual_feedback', param_name, default=default)


if __name__ == "__main__":
    print("\n=== Configuration Test ===\n")

    print("Session:")
    print(f"  Calibration: {get_session_setting('calibration_seconds')} s")
    print(f"  Recording: {get_session_setting('recording_seconds')} s")

    print("\nScoring:")
    print(f"  Distance band: {get_scoring_setting('distance_band')}")
    print(f"  Speed band: {get_scoring_setting('speed_band')}")

    print("\nCamera:")
    print(f"  Resolution: {config.get('camera', 'width')}x{config.get('camera', 'height')}")

    print("\n✓ Configuration system working!")
