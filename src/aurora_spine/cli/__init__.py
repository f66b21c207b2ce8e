"""aurora-spine command line (typer + rich)."""
