"""FMP Eventos: event registration, review and certificate requests"""

__version__ = "1.0.0"
