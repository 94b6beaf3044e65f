# mirror <sysexits.h>
EXIT_OK = 0  # Normal success
EXIT_GENERIC = 1  # Generic failure (fallback)
EXIT_THRESHOLD = 2  # Coverage gate failed the build
EXIT_UNSTABLE = 3  # Coverage marked the build unstable
EXIT_DATAERR = 65  # Input data was invalid (e.g., malformed XML)
EXIT_NOINPUT = 66  # Input file not found (e.g., coverage.xml missing)
EXIT_IOERR = 74  # Report could not be copied or read
EXIT_CONFIG = 78  # Invalid configuration (e.g., bad ratchetcov.json)
