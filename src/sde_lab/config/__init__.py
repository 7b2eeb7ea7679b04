"""Engine settings and YAML/JSON simulation configs."""
