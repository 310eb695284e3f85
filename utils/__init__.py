from utils.timezone import TimezoneNormalizer, get_local_time, format_local_time
from utils.logger import StructuredLogger, JsonFormatter, setup_logging
from utils.retry import RetryContext

__all__ = [
    'TimezoneNormalizer',
    'get_local_time',
    'format_local_time',
    'StructuredLogger',
    'JsonFormatter',
    'setup_logging',
    'RetryContext',
]
