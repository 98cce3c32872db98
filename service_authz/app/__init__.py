"""
Authorization engine package.

Decides whether a principal may perform an action on a resource. It
provides:

- app.subjects: Registry of subject types, actions and attributes.
- app.rules: Rule model, role compiler, Ability and Ability factory.
- app.bootstrap: Wires configuration, logging and metrics into a factory.

Guidelines:
- The engine is pure; callers hand in principals and resource snapshots.
- Keep evaluation deterministic and observable (metrics + logs).
"""
