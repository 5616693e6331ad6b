"""SavingBank: fixed-term savings engine with transferable certificates."""

__version__ = "0.1.0"
