"""Configuration — config-as-code, from_dict(), shared clients, and S3 configs.

Demonstrates different ways to create and use RegistryConfig, including
configuration for an S3-compatible endpoint such as MinIO.
"""

from __future__ import annotations

import asyncio

from object_drive import BrowserOptions, ClientConfig, DriveProfile, Registry, RegistryConfig


async def main() -> None:
    # --- Option 1: Config-as-code with Python objects ---
    config = RegistryConfig(
        clients={"mem": ClientConfig(type="memory")},
        drives={
            "uploads": DriveProfile(client="mem", bucket="shared", root_prefix="uploads"),
            "reports": DriveProfile(client="mem", bucket="shared", root_prefix="reports"),
        },
    )

    async with Registry(config) as registry:
        uploads = registry.get_drive("uploads")
        reports = registry.get_drive("reports")

        await uploads.save("uploads:photo.jpg", b"\xff\xd8\xff\xe0fake-jpeg-data")
        await reports.save("reports:q4.csv", b"revenue,profit\n100,20\n")

        # Both drives share one client and one bucket, under different prefixes
        print("Uploads:", [e.name for e in await uploads.list()])
        print("Reports:", [e.name for e in await reports.list()])
        print("Same client:", uploads.client is reports.client)

    # --- Option 2: from_dict() — e.g. loaded from TOML or JSON ---
    raw = {
        "clients": {"mem": {"type": "memory", "options": {"page_size": 100}}},
        "drives": {"data": {"client": "mem", "bucket": "data", "max_pages": 50}},
    }
    config = RegistryConfig.from_dict(raw)
    async with Registry(config) as registry:
        contents = registry.contents()
        await contents.save("data:input.csv", b"a,b\n1,2\n")
        print(f"\nfrom_dict() drives: {contents.drives}")

    browser_options = BrowserOptions.from_dict({"drive": "data", "refresh_interval": 60})
    print(f"Browser options: {browser_options}")

    # --- S3-compatible client config ---
    # Config-only: it shows the structure but does not connect anywhere.
    s3_config = RegistryConfig(
        clients={
            "minio": ClientConfig(
                type="s3",
                options={
                    "endpoint_url": "http://localhost:9000",
                    "key": "minioadmin",
                    "secret": "minioadmin",
                    "region_name": "us-east-1",
                    "timeout": 10.0,
                    "max_attempts": 5,
                },
            ),
        },
        drives={
            "lake": DriveProfile(client="minio", bucket="lake", root_prefix="v1"),
            "scratch": DriveProfile(client="minio", bucket="scratch"),
        },
    )
    s3_config.validate()
    print(f"\nS3 config: {len(s3_config.drives)} drives on {len(s3_config.clients)} client(s)")

    # --- Config validation: referencing an unknown client raises ValueError ---
    try:
        bad = RegistryConfig(drives={"orphan": DriveProfile(client="nonexistent", bucket="b")})
        bad.validate()
    except ValueError as exc:
        print(f"\nValidation error: {exc}")

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
