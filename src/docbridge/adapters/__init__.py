"""Collection adapter layer — Pluggable connectors for document stores.

Built-in adapters:
  - firestore: Cloud Firestore through the Firebase Admin SDK

Implement ``CollectionAdapter`` to connect your own document store.
"""
