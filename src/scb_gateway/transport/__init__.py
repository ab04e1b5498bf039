"""mTLS socket client and hand-built HTTP/1.1 codec."""
