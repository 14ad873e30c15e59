import os
import requests
import logging
from typing import Optional

log = logging.getLogger(__name__)

API_ROOT = "https://cloud-api.yandex.net/v1/disk/resources"


class YandexDiskStorage:
    """Avatar storage on Yandex.Disk: overwrite-on-conflict upload plus a public link."""

    def __init__(self, token: str, root: str = "PCI/avatars"):
        self.token = token
        self.root = root.strip("/")

    def _headers(self):
        return {'Authorization': f'OAuth {self.token}'}

    def _ensure_dir(self, remote_dir: str):
        # Create each level; 409 means it already exists.
        path = ""
        for part in remote_dir.split("/"):
            path = f"{path}/{part}" if path else part
            resp = requests.put(API_ROOT, headers=self._headers(), params={'path': path}, timeout=5)
            if resp.status_code not in [201, 409]:
                raise RuntimeError(f"Yandex Disk mkdir failed for {path}: HTTP {resp.status_code}")

    def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Upload data under key (replacing any previous object) and return its public URL."""
        if not self.token:
            raise RuntimeError("Yandex Disk token is not configured")
        remote_path = f"{self.root}/{key}"
        try:
            resp = requests.get(
                f"{API_ROOT}/upload",
                headers=self._headers(),
                params={'path': remote_path, 'overwrite': 'true'},
                timeout=10
            )

            if resp.status_code == 409:
                log.info(f"Upload returned 409 Conflict. Creating directory: {os.path.dirname(remote_path)}")
                self._ensure_dir(os.path.dirname(remote_path))
                resp = requests.get(
                    f"{API_ROOT}/upload",
                    headers=self._headers(),
                    params={'path': remote_path, 'overwrite': 'true'},
                    timeout=10
                )

            if resp.status_code != 200:
                raise RuntimeError(f"Yandex Disk upload link failed: HTTP {resp.status_code} {resp.text}")

            href = resp.json().get("href")
            up = requests.put(href, data=data, timeout=15)
            if up.status_code not in [201, 202]:
                raise RuntimeError(f"Yandex Disk upload failed: HTTP {up.status_code}")
            log.info(f"Uploaded {len(data)} bytes to {remote_path}")
            return self.public_url(remote_path)
        except requests.RequestException as e:
            log.error(f"Network error while uploading {remote_path}: {e}")
            raise RuntimeError(f"Yandex Disk Network Error: {e}") from e

    def public_url(self, remote_path: str) -> str:
        publish = requests.put(f"{API_ROOT}/publish", headers=self._headers(),
                               params={'path': remote_path}, timeout=10)
        if publish.status_code not in [200, 201]:
            raise RuntimeError(f"Yandex Disk publish failed: HTTP {publish.status_code}")
        meta = requests.get(API_ROOT, headers=self._headers(),
                            params={'path': remote_path, 'fields': 'public_url'}, timeout=10)
        if meta.status_code != 200 or not meta.json().get("public_url"):
            raise RuntimeError(f"Yandex Disk did not return a public URL for {remote_path}")
        return meta.json()["public_url"]


class LocalAvatarStorage:
    """Avatar storage in a directory served by Streamlit static file serving."""

    def __init__(self, root_dir: str, url_prefix: str = "app/static/avatars"):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = os.path.normpath(os.path.join(self.root_dir, key))
        if not path.startswith(os.path.normpath(self.root_dir) + os.sep):
            raise ValueError(f"Invalid storage key: {key}")
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        log.info(f"Stored {len(data)} bytes at {path}")
        return f"{self.url_prefix}/{key}"
