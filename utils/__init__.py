"""Small helpers shared by the portal views."""
