#!/usr/bin/env python3
"""
Client-side round trip against a running server.

Encrypts a JSON document the way the browser extension does (CryptoJS
passphrase container, passphrase derived from uuid and password), pushes it
with /update and, unless --no-fetch is given, fetches it back both raw and
decrypted.
"""

import json
import uuid as uuid_lib
from pathlib import Path

import requests

from blobsync.core import derive_passphrase, encrypt

BASE_URL = "http://127.0.0.1:8088"


def push(base_url: str, uuid: str, password: str, document: dict) -> bool:
    print(f"\n=== Pushing {uuid} ===")

    plaintext = json.dumps(document, separators=(",", ":"))
    encrypted = encrypt(plaintext, derive_passphrase(uuid, password))

    response = requests.post(
        f"{base_url}/update", json={"uuid": uuid, "encrypted": encrypted}
    )
    print(f"Update Response Status: {response.status_code}")
    print(f"Update Response: {response.text}")
    return response.status_code == 200


def fetch(base_url: str, uuid: str, password: str, document: dict):
    print(f"\n=== Fetching {uuid} ===")

    response = requests.get(f"{base_url}/get/{uuid}")
    print(f"Get Response Status: {response.status_code}")
    if response.status_code != 200:
        print(f"Get failed: {response.text}")
        return

    response = requests.post(f"{base_url}/get/{uuid}", json={"password": password})
    print(f"Decrypt Response Status: {response.status_code}")

    try:
        decrypted = response.json()
    except json.JSONDecodeError:
        print(f"Decrypt Response (not JSON): {response.text}")
        return

    if decrypted == document:
        print("✅ Decrypted document matches what was pushed")
    else:
        print(f"❌ Decrypted document differs: {decrypted}")


if __name__ == "__main__":
    import argparse

    def parse_args():
        parser = argparse.ArgumentParser(
            description="Encrypt a JSON document and push it to a blobsync server"
        )
        parser.add_argument("document", type=Path, help="JSON file to push")
        parser.add_argument("password", type=str, help="Password used to encrypt")
        parser.add_argument("--uuid", type=str, help="Key to store under (random by default)")
        parser.add_argument("--url", type=str, default=BASE_URL, help="Server base URL incl. API root")
        parser.add_argument("--no-fetch", action="store_true", help="Only push, skip the read back")
        return parser.parse_args()

    args = parse_args()
    document = json.loads(args.document.read_text(encoding="utf-8"))
    uuid = args.uuid or str(uuid_lib.uuid4())

    if push(args.url.rstrip("/"), uuid, args.password, document) and not args.no_fetch:
        fetch(args.url.rstrip("/"), uuid, args.password, document)
