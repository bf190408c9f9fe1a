"""
Servicios de aplicacion.

Piezas reutilizables del motor de sync: mappers, registro de entidades,
estrategias por entidad y recorder de corridas.
"""
