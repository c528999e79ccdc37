"""File-backed credential storage, one JSON record per profile.

Records are written atomically (temp file + rename) with mode 600, so a
reader in another process sees either the previous record or the new one,
never a partial write.

Usage:
    from msoauth.auth.token_store import TokenStore
    from msoauth.config import get_token_dir

    store = TokenStore(get_token_dir())
    store.write("work", credential)
    credential = store.read("work")
"""

import json
import os
import stat
import tempfile
from pathlib import Path

from pydantic import ValidationError

from msoauth.auth.models import Credential
from msoauth.config_schema import is_valid_profile_name
from msoauth.core.errors import (
    InvalidProfileNameError,
    TokenFileNotFoundError,
    TokenStoreError,
)
from msoauth.core.logging import get_logger

logger = get_logger(__name__)


class TokenStore:
    """Reads and writes per-profile credentials under a base directory.

    Attributes:
        base_dir: Directory holding <profile>.json records
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def path(self, profile: str) -> Path:
        """Return the record path for a profile.

        Raises:
            InvalidProfileNameError: If the name could escape base_dir or collide
        """
        if not is_valid_profile_name(profile):
            raise InvalidProfileNameError(
                f"Invalid profile name '{profile}': use letters, digits, '_', '-' or '.'"
            )
        return self.base_dir / f"{profile}.json"

    def exists(self, profile: str) -> bool:
        return self.path(profile).is_file()

    def read(self, profile: str) -> Credential:
        """Load the credential for a profile.

        Raises:
            TokenFileNotFoundError: If no record exists for the profile
            TokenStoreError: If the record cannot be read or parsed
        """
        path = self.path(profile)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise TokenFileNotFoundError(
                f"No token file for profile '{profile}' at {path}", path=str(path)
            ) from e
        except OSError as e:
            raise TokenStoreError(
                f"Failed to read token file {path}: {e}", path=str(path)
            ) from e

        try:
            credential = Credential.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            raise TokenStoreError(
                f"Token file {path} is corrupt: {e}. "
                "Run with --clear-token and log in again.",
                path=str(path),
            ) from e

        logger.debug("Token file loaded", path=str(path), expires_at=credential.expires_at)
        return credential

    def write(self, profile: str, credential: Credential) -> None:
        """Persist the credential for a profile, replacing any previous record.

        Raises:
            TokenStoreError: If the record cannot be written
        """
        path = self.path(profile)
        payload = json.dumps(credential.to_record(), indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{profile}.", suffix=".tmp"
            )
        except OSError as e:
            raise TokenStoreError(
                f"Failed to prepare token directory {path.parent}: {e}", path=str(path)
            ) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            # Owner read/write only: the record holds a refresh token
            os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)
            os.replace(tmp_path, path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise TokenStoreError(
                f"Failed to write token file {path}: {e}", path=str(path)
            ) from e

        logger.debug("Token file saved", path=str(path), expires_at=credential.expires_at)

    def clear(self, profile: str) -> bool:
        """Delete the record for a profile.

        Returns:
            True if a record was removed, False if there was none

        Raises:
            TokenStoreError: If the record exists but cannot be removed
        """
        path = self.path(profile)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("No token file to clear", path=str(path))
            return False
        except OSError as e:
            raise TokenStoreError(
                f"Failed to remove token file {path}: {e}", path=str(path)
            ) from e

        logger.info("Token file cleared", path=str(path))
        return True
