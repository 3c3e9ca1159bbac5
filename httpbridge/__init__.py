"""httpbridge - fire-and-forget HTTP requests with exactly-once callbacks."""

from .contexts import ImmediateContext, LoopContext, QueueContext
from .dispatcher import CallbackDispatcher, PendingCallback, unpacked
from .engine import HttpEngine, RequestHandle
from .models import ErrorKind, HttpMethod, RequestSpec, ResponseOutcome
from .transport import HttpTransport
from .utils import describe_status, domain_from_url, is_success_status, is_valid_url

__version__ = "0.1.0"
