"""covbridge command line interface."""
