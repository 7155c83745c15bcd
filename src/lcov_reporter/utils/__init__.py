"""Git, GitHub and CI helpers."""
