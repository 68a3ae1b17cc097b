"""
Review media ingestion.

Client side: coordinator (candidate batch, previews, submission).
Server side: gate -> classifier, naming, storage; errors maps failures
to responses for both.
"""
