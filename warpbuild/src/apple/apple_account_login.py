import base64
import hashlib
import json
import os
from pathlib import Path
import srp
import requests
import http.cookiejar as cookielib
import re
from typing import Optional, Tuple

from warpbuild.logger import get_console
from warpbuild.src.errors import PromptAborted
from warpbuild.src.utils.config_loader import get_session_dir, is_non_interactive

console = get_console()

AUTH_ENDPOINT = "https://idmsa.apple.com/appleauth/auth"
WIDGET_CONFIG_URL = "https://appstoreconnect.apple.com/olympus/v1/app/config?hostname=itunesconnect.apple.com"
CSRF_PATTERN = re.compile(r'csrf["\']\s*:\s*["\']([^"\']+)["\']')
CSRF_TS_PATTERN = re.compile(r'csrf_ts["\']\s*:\s*["\']([^"\']+)["\']')


class SrpPassword:
    """Password wrapper that srp calls back into once Apple sends the salt."""

    def __init__(self, password: str):
        if not isinstance(password, str):
            raise ValueError("Password must be a string")
        self.password = password
        self.salt = None
        self.iterations = None
        self.key_length = None

    def set_encrypt_info(self, salt: bytes, iterations: int, key_length: int):
        self.salt = salt
        self.iterations = iterations
        self.key_length = key_length

    def encode(self):
        password_hash = hashlib.sha256(self.password.encode("utf-8")).digest()
        return hashlib.pbkdf2_hmac(
            "sha256", password_hash, self.salt, self.iterations, self.key_length
        )


class AppleDeveloperAuth:
    """Signed-in session with the Apple Developer portal.

    Sessions (cookies plus the Apple session id / scnt pair) are kept on disk
    per Apple ID so that 2FA is only needed once.
    """

    def __init__(self, session_dir: Optional[Path] = None):
        self.session = requests.Session()
        self._widget_key = None
        self.csrf = None
        self.csrf_ts = None
        self.email = None
        self.session_data = {}

        self._cookie_directory = Path(session_dir or get_session_dir())
        self._cookie_directory.mkdir(parents=True, exist_ok=True)

    def _get_session_id(self, email: str) -> str:
        return f"auth-{hashlib.sha256(email.encode()).hexdigest()[:8]}"

    def _get_paths(self, email: str) -> Tuple[str, str]:
        session_id = self._get_session_id(email)
        cookie_path = str(self._cookie_directory / f"{session_id}.cookies")
        session_path = str(self._cookie_directory / f"{session_id}.session")
        return cookie_path, session_path

    @property
    def widget_key(self) -> str:
        if not self._widget_key:
            response = self.session.get(WIDGET_CONFIG_URL)
            self._widget_key = response.json().get("authServiceKey", "")
        return self._widget_key

    def load_session(self) -> bool:
        """Load saved session data and cookies for self.email."""
        if not self.email:
            raise ValueError("Email not set")
        cookie_path, session_path = self._get_paths(self.email)
        try:
            with open(session_path) as f:
                self.session_data = json.load(f)
            if os.path.exists(cookie_path):
                self.session.cookies = cookielib.LWPCookieJar(filename=cookie_path)
                self.session.cookies.load(ignore_discard=True, ignore_expires=True)
            return True
        except (OSError, ValueError) as e:
            console.print(f"[yellow]Failed to load session: {e}")
            self.session_data = {}
            return False

    def save_session(self) -> None:
        _, session_path = self._get_paths(self.email)
        console.log(f"Saving Apple session to {session_path}")
        with open(session_path, "w") as f:
            json.dump(self.session_data, f)
        # Keep discardable cookies too, Apple marks the session ones that way
        self.session.cookies.save(ignore_discard=True, ignore_expires=True)

    def _get_cookie_value(self, name: str) -> Optional[str]:
        for cookie in self.session.cookies:
            if cookie.name == name:
                return cookie.value
        return None

    def check_auth_status(self) -> bool:
        """A 403 from the certificates endpoint means signed in but no team picked."""
        if not self.session_data.get("session_id") or not self.session_data.get("scnt"):
            return False

        headers = {
            "Accept": "application/json, text/plain, */*",
            "Content-Type": "application/vnd.api+json",
            "X-Requested-With": "XMLHttpRequest",
            "X-Apple-ID-Session-Id": self.session_data["session_id"],
            "scnt": self.session_data["scnt"],
        }
        try:
            response = self.session.get(
                "https://developer.apple.com/services-account/v1/certificates",
                headers=headers,
            )
        except requests.RequestException as e:
            console.print(f"[yellow]Auth status check failed: {e}")
            return False
        return response.status_code == 403

    def _fetch_csrf_tokens(self, url: str) -> bool:
        response = self.session.get(url)
        if response.status_code != 200:
            return False

        self.csrf = self._get_cookie_value("csrf") or response.headers.get("csrf")
        self.csrf_ts = self._get_cookie_value("csrf_ts") or response.headers.get(
            "csrf_ts"
        )
        if not self.csrf:
            match = CSRF_PATTERN.search(response.text)
            if match:
                self.csrf = match.group(1)
        if not self.csrf_ts:
            match = CSRF_TS_PATTERN.search(response.text)
            if match:
                self.csrf_ts = match.group(1)

        return bool(self.csrf and self.csrf_ts)

    def validate_token(self) -> bool:
        """Check the saved session and pick up CSRF tokens for write requests."""
        if not self.check_auth_status():
            return False
        if self._fetch_csrf_tokens("https://developer.apple.com/account/resources"):
            console.log("[green]Retrieved CSRF tokens[/]")
            return True
        console.print("[red]Failed to retrieve CSRF tokens[/]")
        return False

    def _prepare_cookie_jar(self, email: str) -> None:
        cookie_path, session_path = self._get_paths(email)
        self.session.cookies = cookielib.LWPCookieJar(filename=cookie_path)
        self.session.cookies.set_policy(
            cookielib.DefaultCookiePolicy(allowed_domains=None, strict_domain=False)
        )
        if os.path.exists(cookie_path):
            try:
                self.session.cookies.load(ignore_discard=True, ignore_expires=True)
            except (OSError, cookielib.LoadError) as e:
                console.print(f"[yellow]Failed to load cookies: {e}")

        self.session_data = {"client_id": self._get_session_id(email), "email": email}
        if os.path.exists(session_path):
            try:
                with open(session_path) as f:
                    self.session_data = json.load(f)
            except (OSError, ValueError) as e:
                console.print(f"[yellow]Ignoring unreadable session file: {e}")

    def authenticate(self, email: str, password: str) -> bool:
        if not email or not password:
            console.print("[red]Error: Email and password are required[/]")
            return False

        self.email = email
        self._prepare_cookie_jar(email)

        if self.validate_token():
            console.print("Using existing Apple session")
            return True

        console.print("Session invalid or expired, signing in from scratch...")
        self.session_data = {"client_id": self._get_session_id(email), "email": email}

        srp_password = SrpPassword(password)
        srp.rfc5054_enable()
        srp.no_username_in_x()
        usr = srp.User(email, srp_password, hash_alg=srp.SHA256, ng_type=srp.NG_2048)
        uname, a_value = usr.start_authentication()

        headers = {
            "Accept": "application/json, text/javascript",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
            "X-Apple-Widget-Key": self.widget_key,
        }

        init_response = self.session.post(
            f"{AUTH_ENDPOINT}/signin/init",
            headers=headers,
            json={
                "a": base64.b64encode(a_value).decode(),
                "accountName": uname,
                "protocols": ["s2k", "s2k_fo"],
            },
        )
        if init_response.status_code != 200:
            console.print(f"[red]Sign-in init failed: {init_response.status_code}")
            return False

        body = init_response.json()
        salt = base64.b64decode(body["salt"])
        srp_password.set_encrypt_info(salt, body["iteration"], 32)
        m1 = usr.process_challenge(salt, base64.b64decode(body["b"]))
        if m1 is None:
            console.print("[red]SRP challenge could not be processed[/]")
            return False

        complete_response = self.session.post(
            f"{AUTH_ENDPOINT}/signin/complete",
            params={"isRememberMeEnabled": "true"},
            json={
                "accountName": uname,
                "c": body["c"],
                "m1": base64.b64encode(m1).decode(),
                "m2": base64.b64encode(usr.H_AMK).decode(),
                "rememberMe": True,
            },
            headers=headers,
        )
        console.log(f"Sign-in complete response: {complete_response.status_code}")

        if complete_response.status_code == 409:
            return self._verify_second_factor(complete_response)

        if complete_response.status_code not in (200, 302):
            return False

        self._remember_session(complete_response)
        self._fetch_csrf_tokens("https://developer.apple.com/account")
        return True

    def _remember_session(self, response: requests.Response) -> None:
        session_id = response.headers.get("X-Apple-ID-Session-Id")
        scnt = response.headers.get("scnt")
        if session_id and scnt:
            self.session_data.update({"session_id": session_id, "scnt": scnt})
            self.save_session()

    def _verify_second_factor(self, complete_response: requests.Response) -> bool:
        console.print("[yellow]Two-factor authentication required[/]")
        if is_non_interactive():
            console.print("[red]2FA required but NON_INTERACTIVE mode is enabled[/]")
            return False

        try:
            code = console.input("Enter the verification code: ")
        except (EOFError, KeyboardInterrupt):
            raise PromptAborted("Verification code input canceled")

        verify_headers = {
            "Accept": "application/json, text/javascript",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
            "X-Apple-ID-Session-Id": complete_response.headers.get(
                "X-Apple-ID-Session-Id"
            ),
            "scnt": complete_response.headers.get("scnt"),
            "X-Apple-Widget-Key": self.widget_key,
        }

        verify_response = self.session.post(
            f"{AUTH_ENDPOINT}/verify/trusteddevice/securitycode",
            json={"securityCode": {"code": code.strip()}},
            headers=verify_headers,
        )
        if verify_response.status_code != 204:
            console.print(f"[red]Verification failed: {verify_response.status_code}")
            return False

        trust_response = self.session.get(
            f"{AUTH_ENDPOINT}/2sv/trust", headers=verify_headers
        )
        if trust_response.status_code != 204:
            console.print(f"[red]Could not trust session: {trust_response.status_code}")
            return False

        self._remember_session(complete_response)
        self._fetch_csrf_tokens("https://developer.apple.com/account")
        console.print("[green]2FA verification successful[/]")
        return True
