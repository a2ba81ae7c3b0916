"""
Hashcat parser: bind recovered WPA passwords to access points.

Reads hash mode 22000 files (``WPA*TYPE*PMKID/MIC*MAC_AP*MAC_CLIENT*ESSID*ANONCE*EAPOL*MESSAGEPAIR``)
from the working directory for per-AP security hints, then asks
``hashcat --show`` for the cracked entries
(``PMKID/MIC:MAC_AP:MAC_CLIENT:ESSID:PASSWORD``).
"""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from hcxmap.analysis.types import AccessPoint, merge_optional
from hcxmap.parsers.security import SecurityKind
from hcxmap.utils.fs import list_files
from hcxmap.utils.log import get_logger
from hcxmap.utils.mac import parse_mac

logger = get_logger(__name__)

HASH_SUFFIX = ".22000"
TYPE_PMKID = "01"
TYPE_EAPOL = "02"


@dataclass
class RecoveredPassword:
    """
    One cracked network.

    Parameters
    ----------
    mac : bytes
        AP MAC address.
    ssid : str
        ESSID as reported by hashcat.
    password : str
        Recovered passphrase.
    security : SecurityKind
        Best guess from the matching hash line.
    """
    mac: bytes
    ssid: str
    password: str
    security: SecurityKind


def security_from_eapol(eapol: str) -> SecurityKind:
    """
    Guess the security scheme from the AKM suite selectors in a hex EAPOL frame.
    """
    eapol = eapol.lower()
    head = eapol[:48]
    if "000fac08" in eapol or "000fac0c" in eapol:
        logger.debug("Detected WPA3 security from EAPOL data: %s...", head)
        return SecurityKind.WPA3
    if "000fac02" in eapol or "000fac06" in eapol:
        logger.debug("Detected WPA2 security from EAPOL data: %s...", head)
        return SecurityKind.WPA2
    if "000fac01" in eapol or "0050f202" in eapol:
        logger.debug("Detected WPA security from EAPOL data: %s...", head)
        return SecurityKind.WPA
    logger.warning("Unable to determine security type from EAPOL data: %s...", head)
    return SecurityKind.WPA2


def parse_hash_line(line: str) -> Optional[Tuple[bytes, SecurityKind]]:
    """
    Extract ``(ap_mac, security)`` from one mode 22000 hash line.

    PMKID lines carry no AKM information and are assumed WPA2.
    """
    parts = line.strip().split("*")
    if len(parts) < 5 or parts[0] != "WPA":
        return None
    mac = parse_mac(parts[3]) if len(parts[3]) == 12 else None
    if mac is None:
        return None
    if parts[1] == TYPE_EAPOL and len(parts) >= 9:
        return mac, security_from_eapol(parts[7])
    return mac, SecurityKind.WPA2


def parse_hash_files(files: Iterable[Path]) -> Dict[bytes, SecurityKind]:
    """Security hints per AP MAC; later lines win."""
    security: Dict[bytes, SecurityKind] = {}
    for file_path in files:
        logger.debug("Parsing security info from file %s", file_path)
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    parsed = parse_hash_line(line)
                    if parsed is not None:
                        security[parsed[0]] = parsed[1]
        except OSError as e:
            logger.error("Cannot read hash file %s: %s", file_path, e)
    return security


def parse_show_line(line: str, security: Dict[bytes, SecurityKind]) -> Optional[RecoveredPassword]:
    """
    Parse one ``hashcat --show`` line; the password may itself contain colons.
    """
    parts = line.split(":", 4)
    if len(parts) < 5 or len(parts[1]) != 12:
        return None
    mac = parse_mac(parts[1])
    if mac is None:
        return None
    return RecoveredPassword(
        mac=mac,
        ssid=parts[3],
        password=parts[4],
        security=security.get(mac, SecurityKind.UNKNOWN),
    )


def get_passwords(workdir: Path, hashcat_bin: Optional[str] = None) -> List[RecoveredPassword]:
    """
    Run ``hashcat --show -m 22000`` on every `.22000` file in `workdir`.

    Returns an empty list when hashcat is not installed or no hash files
    exist; a failing hashcat run is logged and its file skipped.
    """
    hashcat_bin = hashcat_bin or shutil.which("hashcat")
    if hashcat_bin is None:
        logger.warning("Hashcat binary not found in PATH. Skipping password retrieval.")
        return []

    hash_files = list_files(workdir, HASH_SUFFIX)
    if not hash_files:
        logger.warning("No %s files found in %s.", HASH_SUFFIX, workdir)
        return []

    security = parse_hash_files(hash_files)
    passwords: List[RecoveredPassword] = []
    seen: set[str] = set()
    for file_path in hash_files:
        try:
            proc = subprocess.run(
                [hashcat_bin, "--show", "-m", "22000", str(file_path)],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.error("Failed to execute hashcat for file %s: %s", file_path, e)
            continue

        if proc.returncode != 0:
            logger.error("Hashcat command failed for file %s (exit code %d)", file_path, proc.returncode)
            if proc.stderr:
                logger.error("Error output: %s", proc.stderr.strip())
            continue

        for line in proc.stdout.splitlines():
            if not line or line in seen:
                continue
            seen.add(line)
            recovered = parse_show_line(line, security)
            if recovered is not None:
                passwords.append(recovered)
    return passwords


def merge_password(ap: AccessPoint, pwd: RecoveredPassword) -> None:
    """
    Bind a recovered password to `ap` if it plausibly belongs to it.

    An AP without an SSID adopts the recovered SSID and password; an AP
    whose SSID matches takes the password. A different SSID under the same
    MAC is left alone. Security is only filled when unset.
    """
    if ap.mac != pwd.mac:
        return
    if ap.ssid is None:
        ap.ssid = pwd.ssid
    elif ap.ssid != pwd.ssid:
        return
    ap.password = pwd.password
    ap.security = merge_optional(ap.security, pwd.security)


def bind_passwords(aps: Iterable[AccessPoint], passwords: Iterable[RecoveredPassword]) -> int:
    """
    Merge every recovered password into the matching APs.

    Returns
    -------
    int
        Number of APs holding a password afterwards.
    """
    by_mac: Dict[bytes, List[RecoveredPassword]] = {}
    for pwd in passwords:
        by_mac.setdefault(pwd.mac, []).append(pwd)

    bound = 0
    for ap in aps:
        for pwd in by_mac.get(ap.mac, []):
            merge_password(ap, pwd)
        if ap.password is not None:
            bound += 1
    return bound
