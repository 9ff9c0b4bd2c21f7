import base64
import os

from blobsync.shared import load_config
from blobsync.storage import KeyedStore, NotFoundError

config = load_config()


def corrupt_blob(store: KeyedStore, uuid: str, keep_header: bool):
    try:
        record = store.get(uuid)
    except NotFoundError:
        print(f"[!] No record stored for '{uuid}'")
        return

    raw = base64.b64decode(record.ciphertext)
    print(f"[•] Record '{uuid}' holds {len(raw)} container bytes")

    # Keeping "Salted__" + salt makes the failure surface at padding removal
    prefix = raw[:16] if keep_header else b""
    corrupt = prefix + os.urandom(max(16, len(raw) - len(prefix)))

    store.put(uuid, base64.b64encode(corrupt).decode("ascii"))
    print(f"[✔] Corrupted record '{uuid}'; decrypting it should now return {{}}")


if __name__ == "__main__":
    import argparse

    def parse_args():
        parser = argparse.ArgumentParser(
            description="Simulate corruption of a stored encrypted blob"
        )
        parser.add_argument("uuid", type=str, help="Key of the record to corrupt")
        parser.add_argument("--data-dir", type=str, help="Data directory override")
        parser.add_argument(
            "--keep-header",
            action="store_true",
            help="Keep the container header and salt, only scramble the body",
        )
        return parser.parse_args()

    args = parse_args()
    store = KeyedStore(args.data_dir or config.paths.data)

    corrupt_blob(store, args.uuid, args.keep_header)
