"""Certificate registry: transferable right-to-act tokens."""

from savingbank.certificates.registry import CertificateRegistry

__all__ = ["CertificateRegistry"]
