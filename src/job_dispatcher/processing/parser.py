"""
Module: parser.py
Description: Turns raw SQS messages into Job records.
"""

import json
from typing import Any, Dict, Optional

from job_dispatcher.errors import ParseError
from job_dispatcher.models.job import (
    DEFAULT_JOB_CLASS,
    Job,
    RawMessage,
    message_id_of,
)

SUPPORTED_ATTRIBUTE_TYPES = ('String', 'Number')
BODY_FORMATS = ('json', 'string')


class MessageParser:
    """
    Stateless message normalizer.

    Only String and Number message attributes survive parsing; Binary
    and custom-typed attributes are dropped.
    """

    def __init__(
        self,
        job_class_attribute_name: Optional[str] = None,
        body_format: str = 'string'
    ):
        if body_format not in BODY_FORMATS:
            raise ValueError(f"body_format must be one of: {', '.join(BODY_FORMATS)}")

        self._job_class_attribute_name = job_class_attribute_name
        self._body_format = body_format

    @property
    def job_class_attribute_name(self) -> Optional[str]:
        return self._job_class_attribute_name

    @property
    def body_format(self) -> str:
        return self._body_format

    def parse(self, message: RawMessage) -> Job:
        """
        Build a Job from a raw SQS message.

        Args:
            message: Message dict as returned by ReceiveMessage

        Returns:
            Parsed Job

        Raises:
            ParseError: If body_format is json and the body is not valid JSON
        """
        attributes = self._parse_attributes(message)
        return Job(
            id=message_id_of(message),
            attributes=attributes,
            job_class=self._job_class(attributes),
            body=self._parse_body(message),
            original_message=message
        )

    @staticmethod
    def _parse_attributes(message: RawMessage) -> Dict[str, str]:
        return {
            name: value.get('StringValue', '')
            for name, value in (message.get('MessageAttributes') or {}).items()
            if value.get('DataType') in SUPPORTED_ATTRIBUTE_TYPES
        }

    def _job_class(self, attributes: Dict[str, str]) -> str:
        if not self._job_class_attribute_name:
            return DEFAULT_JOB_CLASS
        return attributes.get(self._job_class_attribute_name) or DEFAULT_JOB_CLASS

    def _parse_body(self, message: RawMessage) -> Any:
        body = message.get('Body') or ''
        if self._body_format != 'json':
            return body

        try:
            return json.loads(body or '{}')
        except (TypeError, ValueError) as e:
            raise ParseError(f"Message body is not valid JSON: {e}") from e
