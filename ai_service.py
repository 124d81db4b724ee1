"""
Centralized AI Service Manager
Wraps the Anthropic client used for business analysis and reputation summaries
"""
import json
import logging
import re
from typing import Optional, Dict, Any, List

import anthropic

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r'\{[\s\S]*\}')


class AIServiceError(Exception):
    """Base exception for AI service errors"""
    pass


class AIServiceUnavailable(AIServiceError):
    """Raised when AI service is not configured or unavailable"""
    pass


class AIServiceTimeout(AIServiceError):
    """Raised when AI service times out"""
    pass


def extract_text(response) -> str:
    """Concatenate the text blocks of a Messages API response"""
    parts = []
    for block in getattr(response, 'content', None) or []:
        if getattr(block, 'type', None) == 'text':
            parts.append(block.text)
    return ''.join(parts)


def parse_json_block(text: str) -> Dict[str, Any]:
    """
    Parse the first {...} block in a model reply

    Raises:
        AIServiceError: If no JSON object can be found or decoded
    """
    match = _JSON_BLOCK.search(text or '')
    if not match:
        raise AIServiceError("No JSON object found in AI response")
    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        raise AIServiceError(f"AI response was not valid JSON: {e}")
    if not isinstance(data, dict):
        raise AIServiceError("AI response JSON was not an object")
    return data


class AIService:
    """
    Centralized AI service manager. Calls are made once; callers fall back
    to their own defaults when a call fails.
    """

    def __init__(self, config):
        """
        Initialize AI service with configuration

        Args:
            config: Flask app configuration object
        """
        self.config = config
        self.anthropic_client = None

        self._initialize_clients()

    def _initialize_clients(self):
        """Initialize AI API clients"""
        if self.config.get('ANTHROPIC_API_KEY'):
            try:
                self.anthropic_client = anthropic.Anthropic(
                    api_key=self.config['ANTHROPIC_API_KEY'],
                    timeout=self.config.get('AI_TIMEOUT', 60),
                    max_retries=0
                )
                logger.info("Anthropic Claude client initialized")
            except Exception as e:
                logger.error(f"Failed to initialize Anthropic client: {e}")

    def call_claude(
        self,
        messages: List[Dict[str, Any]],
        model_key: str = 'claude',
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None
    ):
        """
        Call Claude API

        Args:
            messages: List of message dictionaries
            model_key: Entry of AI_MODELS supplying the defaults
            model: Model name (defaults to config)
            max_tokens: Maximum tokens (defaults to config)
            temperature: Temperature setting (defaults to config)
            system: System prompt

        Returns:
            Messages API response

        Raises:
            AIServiceUnavailable: If Claude is not configured
            AIServiceTimeout: If the request timed out
            AIServiceError: On API errors
        """
        if not self.anthropic_client:
            raise AIServiceUnavailable("Anthropic Claude is not configured")

        # Use config defaults if not specified
        model_config = self.config['AI_MODELS'][model_key]
        model = model or model_config['model']
        max_tokens = max_tokens or model_config['max_tokens']
        temperature = model_config['temperature'] if temperature is None else temperature

        try:
            logger.info(f"Calling Claude API: model={model}, max_tokens={max_tokens}")

            params = {
                'model': model,
                'max_tokens': max_tokens,
                'temperature': temperature,
                'messages': messages,
            }
            if system:
                params['system'] = system

            response = self.anthropic_client.messages.create(**params)

            logger.info(f"Claude API call successful: stop_reason={response.stop_reason}")
            return response

        except anthropic.APITimeoutError as e:
            logger.error(f"Claude API timeout: {e}")
            raise AIServiceTimeout(f"Claude API timed out: {e}")
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            raise AIServiceError(f"Claude API error: {e}")

    def complete_json(self, prompt: str, model_key: str = 'claude', system: Optional[str] = None) -> Dict[str, Any]:
        """Send one user prompt and parse the JSON object in the reply"""
        response = self.call_claude(
            messages=[{'role': 'user', 'content': prompt}],
            model_key=model_key,
            system=system
        )
        return parse_json_block(extract_text(response))

    def is_available(self, service: str = 'claude') -> bool:
        """
        Check if a specific AI service is available

        Args:
            service: Service name ('claude')

        Returns:
            True if service is available, False otherwise
        """
        if service == 'claude':
            return self.anthropic_client is not None
        return False
