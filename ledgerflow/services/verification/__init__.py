"""Statement verification package."""
from ledgerflow.services.verification.local_checks import StatementReconciler
from ledgerflow.services.verification.remote import RemoteVerifier
from ledgerflow.services.verification.verifier import IngestionVerifier, VerificationGate

__all__ = ["IngestionVerifier", "RemoteVerifier", "StatementReconciler", "VerificationGate"]
