"""Servicios del Core.

Por qué:
- Transiciones de estado puras: reciben un snapshot y devuelven otro nuevo.
- Sin I/O: la persistencia y la IA viven en `adapters`.
"""
