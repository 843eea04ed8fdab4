"""Publishing metadata requests to the metadata topic."""

from typing import Any, Dict

from .envelope import METADATA_TYPE_ATTRIBUTE, encode_metadata_message
from .error_handling import translate_client_errors
from .exceptions import PhotoPipelineError
from .protocols import SNSClientProtocol


@translate_client_errors(PhotoPipelineError)
def publish_metadata(
    sns_client: SNSClientProtocol,
    topic_arn: str,
    image_name: str,
    field_name: str,
    value: str,
) -> Dict[str, Any]:
    """Publish ``{"id", "value"}`` tagged with the ``metadata_type`` attribute."""
    return sns_client.publish(
        TopicArn=topic_arn,
        Message=encode_metadata_message(image_name, value),
        MessageAttributes={
            METADATA_TYPE_ATTRIBUTE: {"DataType": "String", "StringValue": field_name}
        },
    )
