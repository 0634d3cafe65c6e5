"""
Aegis

Serverless end-to-end message encryption:
- RSA-4096 identity keys kept in a pluggable key store
- AES-256-GCM message sealing under a fresh per-message key
- RSA-OAEP-256 key wrapping and RSA-PSS-256 signatures
- Self-describing envelopes carrying the sender's public key
- SHA-256 identity fingerprints
"""

__version__ = "1.0.0"
__author__ = "Aegis contributors"
