"""HTTP/HTTPS status board for a fixed roster of domains."""
