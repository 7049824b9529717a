"""CLI de NeuPool (Typer + Rich)."""
