"""Core de NeuPool: configuración, dominio y servicios puros (sin I/O)."""
