# Text sent over the wire and read from files is UTF-8
DEFAULT_ENCODING: str = "utf8"

# HTTP lines end with CRLF
EOL: bytes = b"\r\n"

# EOF
