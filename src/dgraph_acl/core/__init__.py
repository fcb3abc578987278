"""
dgraph_acl.core — shared infrastructure.

Modules:
    constants    Exit codes, defaults, environment prefixes
    exceptions   Error hierarchy
    permissions  Integer <-> rights codec for predicate ACLs
    config       Settings resolution and the effective configuration model
    verbs        Command verbs and the settings each one declares
"""
