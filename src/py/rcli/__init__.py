__version__: str = "0.1.0"

from .http.model import (  # NOQA: E402
	HTTPRequest,
	HTTPResponse,
	HTTPRequestError,
)  # NOQA: F401
from .decorators import on  # NOQA: F401,E402
from .model import Service, Application  # NOQA: F401,E402
from .server import run  # NOQA: F401,E402
from .services.files import FileService, ServeOptions  # NOQA: F401,E402

# EOF
