"""
CareerBridge identity core.

Account resolution, local and federated login, and session token issuance.
"""
