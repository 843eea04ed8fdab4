"""Tests for publishing metadata requests."""

import json

import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from photo_pipeline.core.exceptions import PhotoPipelineError
from photo_pipeline.core.publishing import publish_metadata


def test_publish_tags_message_with_field_name():
    sns_client = MagicMock()
    sns_client.publish.return_value = {"MessageId": "m-1"}

    response = publish_metadata(sns_client, "arn:topic", "vacation.png", "Date", "2023-05-01")

    assert response == {"MessageId": "m-1"}
    kwargs = sns_client.publish.call_args.kwargs
    assert kwargs["TopicArn"] == "arn:topic"
    assert json.loads(kwargs["Message"]) == {"id": "vacation.png", "value": "2023-05-01"}
    assert kwargs["MessageAttributes"] == {
        "metadata_type": {"DataType": "String", "StringValue": "Date"}
    }


def test_publish_failure_is_translated():
    sns_client = MagicMock()
    sns_client.publish.side_effect = ClientError(
        {"Error": {"Code": "NotFound", "Message": "Topic does not exist"}}, "Publish"
    )

    with pytest.raises(PhotoPipelineError, match="publish_metadata failed"):
        publish_metadata(sns_client, "arn:missing", "vacation.png", "Caption", "x")
