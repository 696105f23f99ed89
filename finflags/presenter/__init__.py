"""
Context Presenter: operator console that selects an identity/tenant pair and
shows server-evaluated and client-evaluated flag values side by side.
"""
