"""godotup - install and switch between Godot engine versions."""

__version__ = "0.1.0"
