import argparse
from pathlib import Path
from rich_argparse import RawDescriptionRichHelpFormatter

from warpbuild.src.build.options import BuildOptions


def create_parser():
    """Create and return an argument parser with build arguments."""
    parser = argparse.ArgumentParser(
        prog="warpbuild",
        description="Build your iOS app remotely",
        formatter_class=RawDescriptionRichHelpFormatter,
    )
    add_build_arguments(parser)
    return parser


def add_build_arguments(parser):
    """Add all iOS build arguments to an existing parser."""
    parser.add_argument(
        "project_dir",
        type=Path,
        nargs="?",
        default=Path("."),
        help="Project directory containing app.json [default: current directory]",
    )

    parser.add_argument(
        "--public-url",
        type=str,
        help="Build from a hosted manifest instead of the local project (skips publishing)",
    )

    credentials = parser.add_argument_group("credentials")
    credentials.add_argument(
        "--clear-credentials",
        action="store_true",
        help="Clear all stored credentials before building [default: disabled]",
    )
    credentials.add_argument(
        "--clear-dist-cert",
        action="store_true",
        help="Clear the stored distribution certificate [default: disabled]",
    )
    credentials.add_argument(
        "--clear-push-key",
        action="store_true",
        help="Clear the stored push notifications key [default: disabled]",
    )
    credentials.add_argument(
        "--clear-push-cert",
        action="store_true",
        help="Clear the stored push certificate (deprecated, use push keys) [default: disabled]",
    )
    credentials.add_argument(
        "--clear-provisioning-profile",
        action="store_true",
        help="Clear the stored provisioning profile [default: disabled]",
    )
    credentials.add_argument(
        "--revoke-credentials",
        action="store_true",
        help="Also revoke cleared credentials on the Apple Developer Portal [default: disabled]",
    )

    apple = parser.add_argument_group("apple")
    apple.add_argument(
        "--team-id", type=str, help="Apple Developer team to use [default: ask]"
    )
    apple.add_argument(
        "--dist-p12-path",
        type=Path,
        help="Distribution certificate to use, password read from DIST_CERT_PASSWORD",
    )
    apple.add_argument(
        "--push-p8-path", type=Path, help="APNs key (.p8) to use, requires --push-id"
    )
    apple.add_argument("--push-id", type=str, help="Key ID of the APNs key")
    apple.add_argument(
        "--provisioning-profile-path",
        type=Path,
        help="Provisioning profile (.mobileprovision) to use",
    )


def create_build_options(args) -> BuildOptions:
    """Convert parsed arguments to BuildOptions"""
    return BuildOptions(
        project_dir=args.project_dir,
        public_url=args.public_url,
        clear_credentials=args.clear_credentials,
        clear_dist_cert=args.clear_dist_cert,
        clear_push_key=args.clear_push_key,
        clear_push_cert=args.clear_push_cert,
        clear_provisioning_profile=args.clear_provisioning_profile,
        revoke_credentials=args.revoke_credentials,
        team_id=args.team_id,
        dist_p12_path=args.dist_p12_path,
        push_p8_path=args.push_p8_path,
        push_id=args.push_id,
        provisioning_profile_path=args.provisioning_profile_path,
    )
