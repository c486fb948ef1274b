from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Any, Dict, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from account_backend.core.errors import ConflictError, NotFoundError
from account_backend.core.settings import S
from account_backend.core.tables import T
from account_backend.core.time import now_ts

# Attribute names on the DynamoDB item
USER_FIELDS = ("user_id", "name", "email", "password_hash", "profile_image", "created_at", "updated_at")


def public_user(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": item["user_id"],
        "name": item.get("name", ""),
        "email": item.get("email", ""),
        "profileImage": item.get("profile_image", "") or "",
    }


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class UserStore:
    """User records in a DynamoDB table keyed on ``user_id`` with a GSI on ``email``."""

    def __init__(self, table: Any, *, email_index: str = S.users_email_index) -> None:
        self.table = table
        self.email_index = email_index

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.table.get_item(Key={"user_id": user_id}, ConsistentRead=True).get("Item")

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        resp = self.table.query(
            IndexName=self.email_index,
            KeyConditionExpression=Key("email").eq(email),
            Limit=1,
        )
        items = resp.get("Items", [])
        return items[0] if items else None

    def create(self, *, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        ts = now_ts()
        item = {
            "user_id": str(uuid.uuid4()),
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "profile_image": "",
            "created_at": ts,
            "updated_at": ts,
        }
        try:
            self.table.put_item(Item=item, ConditionExpression="attribute_not_exists(user_id)")
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise ConflictError("User already exists.") from exc
            raise
        return item

    def update_fields(self, user_id: str, /, **fields: Any) -> Dict[str, Any]:
        if "user_id" in fields or not set(fields) <= set(USER_FIELDS):
            raise ValueError(f"cannot update fields: {sorted(fields)}")
        fields["updated_at"] = now_ts()
        names = {f"#{k}": k for k in fields}
        values = {f":{k}": v for k, v in fields.items()}
        try:
            resp = self.table.update_item(
                Key={"user_id": user_id},
                UpdateExpression="SET " + ", ".join(f"#{k}=:{k}" for k in fields),
                ConditionExpression="attribute_exists(user_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise NotFoundError() from exc
            raise
        return resp.get("Attributes", {})

    def delete(self, user_id: str) -> None:
        self.table.delete_item(Key={"user_id": user_id})


@lru_cache(maxsize=1)
def get_user_store() -> UserStore:
    return UserStore(T.users)
