"""Wire formats, device settings model, storage and service client for ADC64 digitizer boards."""

__version__ = "0.1.0"