"""
Outbound email to the site admin (applications, contact form) with mailto fallback.
"""
