"""Adaptadores de infraestructura (IA, fichero de estado, HTTP)."""
