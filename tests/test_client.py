import json

from solvanity.client import VanityClient
from solvanity.verify import is_valid, verify_keypair


def test_client_search_end_to_end(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"patterns": [
        {"pattern": c, "minLength": 1} for c in "123456789ABCDEFGHJKLMNPQRSTUVWXYZ"
    ]}))
    client = VanityClient(server_args=[
        "--workers", "1", "--config", str(config),
        "--rare-log", str(tmp_path / "rare.txt"),
    ])
    rares = []
    client.on_rare = rares.append

    found = client.search("")

    assert found is not None
    assert found.attempts >= 1
    assert is_valid(verify_keypair(found.address, found.private_key))
    assert len(rares) == 1
    assert client.elapsed > 0


def test_client_single_char_prefix(tmp_path):
    client = VanityClient(server_args=["--workers", "2", "--rare-log", str(tmp_path / "r.txt")])
    progress = []
    client.on_progress = lambda msg, elapsed: progress.append(msg.attempts)

    found = client.search("3")

    assert found.address.startswith("3")
    assert progress == sorted(progress)


def test_client_returns_none_when_server_exits(tmp_path):
    client = VanityClient(server_args=["--workers", "1"])
    client.command = [*client.command[:-2], "--bogus-flag"]
    assert client.search("abc") is None
