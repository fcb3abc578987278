"""dgraph-acl command-line interface."""
