"""Cloud Firestore collection adapter."""

from docbridge.adapters.firestore.adapter import FirestoreAdapter

__all__ = ["FirestoreAdapter"]
