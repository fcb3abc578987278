"""ACL operations issued against the cluster."""
