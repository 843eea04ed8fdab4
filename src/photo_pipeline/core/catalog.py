"""DynamoDB-backed image catalog."""

from typing import Any, Optional

from .error_handling import client_error_code, translate_client_errors
from .exceptions import CatalogReadFailure, CatalogWriteFailure, UnknownCatalogEntry
from .models import METADATA_FIELDS, CatalogEntry


CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoDBCatalogStore:
    """
    Catalog store over a DynamoDB table keyed by ``imageName``.

    Creation is a conditional put, so concurrent writers of the same key
    never produce a second item or overwrite fields set in the meantime.
    Field updates are conditional on the item existing.
    """

    def __init__(self, dynamodb_client: Any, table_name: str):
        self._client = dynamodb_client
        self._table_name = table_name

    @property
    def table_name(self) -> str:
        return self._table_name

    @translate_client_errors(CatalogWriteFailure)
    def insert_if_absent(self, image_name: str) -> bool:
        try:
            self._client.put_item(
                TableName=self._table_name,
                Item={"imageName": {"S": image_name}},
                ConditionExpression="attribute_not_exists(imageName)",
            )
        except Exception as e:
            if client_error_code(e) == CONDITIONAL_CHECK_FAILED:
                return False
            raise
        return True

    @translate_client_errors(CatalogWriteFailure)
    def set_field(self, image_name: str, field_name: str, value: str) -> None:
        # Date is a DynamoDB reserved word, so the field goes through a name placeholder
        try:
            self._client.update_item(
                TableName=self._table_name,
                Key={"imageName": {"S": image_name}},
                UpdateExpression="SET #field = :value",
                ConditionExpression="attribute_exists(imageName)",
                ExpressionAttributeNames={"#field": field_name},
                ExpressionAttributeValues={":value": {"S": value}},
            )
        except Exception as e:
            if client_error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise UnknownCatalogEntry(image_name) from e
            raise

    @translate_client_errors(CatalogReadFailure)
    def get(self, image_name: str) -> Optional[CatalogEntry]:
        response = self._client.get_item(
            TableName=self._table_name,
            Key={"imageName": {"S": image_name}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if not item:
            return None
        fields = {
            name: item[name]["S"] for name in METADATA_FIELDS if "S" in item.get(name, {})
        }
        return CatalogEntry(image_name=item["imageName"]["S"], **fields)
