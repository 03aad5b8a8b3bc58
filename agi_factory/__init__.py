"""AGI Factory: an idle simulation of growing an AI lab toward AGI."""

__version__ = '0.1.0'
