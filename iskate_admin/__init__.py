"""Domain services for the iSkate admin portal."""
