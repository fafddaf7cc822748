from .base import LLMClient, LLMError
from .deepseek_client import DeepSeekClient
