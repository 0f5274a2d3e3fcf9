"""Import audit logging and reports."""
