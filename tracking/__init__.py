"""Local study state: settings, tasks, focus sessions and profile preferences."""
