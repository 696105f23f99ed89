"""
Context Store: catalog of identities/tenants plus server-side flag evaluation.
"""
