from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class BuildOptions:
    """Options for one iOS build request"""

    project_dir: Path = Path(".")
    public_url: Optional[str] = None

    clear_credentials: bool = False
    clear_dist_cert: bool = False
    clear_push_key: bool = False
    clear_push_cert: bool = False  # deprecated, push keys replace push certs
    clear_provisioning_profile: bool = False
    revoke_credentials: bool = False

    team_id: Optional[str] = None
    dist_p12_path: Optional[Path] = None
    push_p8_path: Optional[Path] = None
    push_id: Optional[str] = None
    provisioning_profile_path: Optional[Path] = None
