import asyncio
import httpx
import json
import os
import sys

USAGE = """Usage: python client.py <command> <form_id> [args]

Commands:
  settings  <form_id>                  Show saved settings and trigger state
  set       <form_id> <key> <value>    Save a setting and reconcile the trigger
  option    <form_id> <key> <value>    Save a setting only
  reconcile <form_id>                  Reconcile the trigger with saved settings
  export    <form_id>                  Print the export bundle

The service URL is read from FORM_CONNECTOR_URL (default http://localhost:8000)."""


async def call_service(server_url: str, command: str, form_id: str, args: list[str]) -> httpx.Response:
    """Send one command to the form connector service"""

    base = f"{server_url.rstrip('/')}/form-sync/{form_id}"

    async with httpx.AsyncClient(timeout=120.0) as client:
        if command == "settings":
            return await client.get(f"{base}/settings", params={"check_trigger": "true"})

        if command in ("set", "option"):
            if len(args) < 2:
                raise ValueError(f"'{command}' needs <key> <value>")
            endpoint = "settings" if command == "set" else "options"
            return await client.post(
                f"{base}/{endpoint}",
                json={"property": args[0], "value": args[1]}
            )

        if command == "reconcile":
            return await client.post(f"{base}/reconcile")

        if command == "export":
            return await client.get(f"{base}/export")

    raise ValueError(f"Unknown command: {command}")


async def run(server_url: str, command: str, form_id: str, args: list[str]) -> int:
    print(f"→ {command} {form_id} {' '.join(args)}".rstrip())
    try:
        response = await call_service(server_url, command, form_id, args)
    except httpx.HTTPError as e:
        print(f"✗ Error: {e}")
        return 1

    print(f"← {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except json.JSONDecodeError:
        print(response.text)
    return 0 if response.is_success else 1


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]
    form_id = sys.argv[2]
    server_url = os.getenv("FORM_CONNECTOR_URL", "http://localhost:8000")

    try:
        sys.exit(asyncio.run(run(server_url, command, form_id, sys.argv[3:])))
    except ValueError as e:
        print(f"✗ {e}\n\n{USAGE}")
        sys.exit(1)
