"""
Content approval lifecycle: states, link issuance, external resolution and audit trail.
"""
