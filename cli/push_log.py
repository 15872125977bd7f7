import argparse
import base64
import gzip
import json
import os
import uuid
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

# Load environment variables from a .env file for local testing
load_dotenv()

# Name of the deployed trigger-workflow Lambda
FUNCTION_NAME = os.environ.get("TRIGGER_FUNCTION_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-northeast-1")


def create_error_log_entry(name, message, context, stack=None, timestamp=None) -> str:
    """
    Creates an ERROR log line in the same JSON shape the demo API writes to CloudWatch.
    """
    error = {"name": name, "message": message}
    if stack is not None:
        error["stack"] = stack
    return json.dumps({
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
        "context": context,
        "error": error,
        "severity": "ERROR",
    })


def create_info_log_entry(message, context) -> str:
    return json.dumps({
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "context": context,
        "message": message,
        "severity": "INFO",
    })


def build_subscription_event(log_group: str, log_stream: str, messages: list[str],
                             message_type: str = "DATA_MESSAGE") -> dict:
    """
    Wraps log lines the way CloudWatch Logs delivers them to a subscribed Lambda:
    JSON document, gzip, then base64 under event['awslogs']['data'].
    """
    now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    document = {
        "messageType": message_type,
        "owner": "123456789012",
        "logGroup": log_group,
        "logStream": log_stream,
        "subscriptionFilters": ["error-trigger-filter"],
        "logEvents": [
            {"id": uuid.uuid4().hex, "timestamp": now_ms, "message": message}
            for message in messages
        ],
    }
    compressed = gzip.compress(json.dumps(document).encode('utf-8'))
    return {"awslogs": {"data": base64.b64encode(compressed).decode('ascii')}}


def sample_messages() -> list[str]:
    return [
        create_info_log_entry("GET /users 200", "GET /users"),
        create_error_log_entry(
            "TypeError",
            "Cannot read properties of null (reading 'nested')",
            "GET /error/null",
            stack="TypeError: Cannot read properties of null (reading 'nested')\n    at triggerNullReferenceError (/var/task/index.js:24:16)",
        ),
        create_error_log_entry("RangeError", "Invalid array length", "GET /error/range"),
        "START RequestId: 3f1c2d1e-0000-4000-8000-000000000000 Version: $LATEST",
    ]


def invoke_function(function_name: str, event: dict) -> None:
    """
    Sends the event to the deployed function asynchronously, as CloudWatch Logs would.
    """
    lambda_client = boto3.client('lambda', region_name=AWS_REGION)
    try:
        response = lambda_client.invoke(
            FunctionName=function_name,
            InvocationType='Event',
            Payload=json.dumps(event).encode('utf-8'),
        )
        print(f"\n✅ Success! Event sent to {function_name}.")
        print(f"Status Code: {response['StatusCode']}")
    except (BotoCoreError, ClientError) as e:
        print(f"\n❌ Failed to invoke {function_name}.")
        print(f"Error: {e}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build a CloudWatch Logs subscription event with sample error logs.")
    parser.add_argument("--log-group", default="/aws/lambda/sample-app")
    parser.add_argument("--log-stream", default="2025/01/01/[$LATEST]sample")
    parser.add_argument("--invoke", action="store_true",
                        help="Invoke the function named by TRIGGER_FUNCTION_NAME instead of printing the event.")
    args = parser.parse_args(argv)

    event = build_subscription_event(args.log_group, args.log_stream, sample_messages())
    if not args.invoke:
        print(json.dumps(event, indent=2))
        return

    if not FUNCTION_NAME:
        print("❌ ERROR: TRIGGER_FUNCTION_NAME environment variable not set. Please create a .env file.")
        return
    invoke_function(FUNCTION_NAME, event)


if __name__ == "__main__":
    main()
