"""core/ -- Configuration, database schema, errors and the validation engine."""
