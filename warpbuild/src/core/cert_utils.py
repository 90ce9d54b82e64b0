"""openssl helpers for the signing material we store and generate."""

import base64
import secrets
import subprocess
import tempfile
from pathlib import Path
from typing import Tuple


def _run_openssl(args, input_text: str = None) -> str:
    result = subprocess.run(
        ["openssl", *args],
        input=input_text,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"openssl {args[0]} failed:\nstdout: {result.stdout}\nstderr: {result.stderr}"
        )
    return result.stdout


def parse_serial(openssl_output: str) -> str:
    """Turn `serial=0A1B...` into the bare upper-case hex serial."""
    line = openssl_output.strip()
    if "=" in line:
        line = line.split("=", 1)[1]
    return line.strip().upper()


def p12_serial_number(p12_base64: str, password: str) -> str:
    """Serial number of the certificate inside a base64 encoded PKCS#12 bundle"""
    with tempfile.TemporaryDirectory() as temp_dir:
        p12_path = Path(temp_dir) / "cert.p12"
        p12_path.write_bytes(base64.b64decode(p12_base64))

        pem = None
        # OpenSSL 3 refuses the RC2 encrypted bundles Keychain Access exports
        # unless -legacy is passed, older releases don't know the flag.
        for extra in ([], ["-legacy"]):
            try:
                pem = _run_openssl(
                    [
                        "pkcs12",
                        "-in",
                        str(p12_path),
                        "-nokeys",
                        "-clcerts",
                        "-passin",
                        f"pass:{password}",
                        *extra,
                    ]
                )
                break
            except RuntimeError:
                if extra:
                    raise

        return parse_serial(_run_openssl(["x509", "-noout", "-serial"], pem))


def create_private_key_and_csr(common_name: str) -> Tuple[str, str]:
    """Create an RSA 2048 key and a CSR for it, both PEM."""
    with tempfile.TemporaryDirectory() as temp_dir:
        key_path = Path(temp_dir) / "key.pem"
        csr_path = Path(temp_dir) / "request.csr"
        _run_openssl(
            [
                "req",
                "-new",
                "-newkey",
                "rsa:2048",
                "-nodes",
                "-keyout",
                str(key_path),
                "-out",
                str(csr_path),
                "-subj",
                f"/CN={common_name}",
            ]
        )
        return key_path.read_text(), csr_path.read_text()


def export_p12(certificate_der: bytes, private_key_pem: str) -> Tuple[str, str]:
    """Bundle a certificate and its key as PKCS#12. Returns (base64 p12, password)."""
    password = secrets.token_hex(16)
    with tempfile.TemporaryDirectory() as temp_dir:
        cert_der_path = Path(temp_dir) / "cert.cer"
        cert_pem_path = Path(temp_dir) / "cert.pem"
        key_path = Path(temp_dir) / "key.pem"
        p12_path = Path(temp_dir) / "cert.p12"

        cert_der_path.write_bytes(certificate_der)
        key_path.write_text(private_key_pem)
        _run_openssl(
            [
                "x509",
                "-inform",
                "der",
                "-in",
                str(cert_der_path),
                "-out",
                str(cert_pem_path),
            ]
        )
        _run_openssl(
            [
                "pkcs12",
                "-export",
                "-inkey",
                str(key_path),
                "-in",
                str(cert_pem_path),
                "-out",
                str(p12_path),
                "-passout",
                f"pass:{password}",
            ]
        )
        return base64.b64encode(p12_path.read_bytes()).decode("utf-8"), password
