"""
SPDX-License-Identifier: Apache-2.0
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup(
        name="dpcauth",
        version="1.0.0",
        description="Client-side adapter for the DPC document authorisation service",
        license="Apache-2.0",
        python_requires=">=3.9",
        packages=setuptools.find_packages(include=["dpcauth", "dpcauth.*"]),
        data_files=[("share/dpcauth/config", ["config/client.conf", "config/logging.conf"])],
        install_requires=["requests"],
        extras_require={"test": ["pytest"]},
    )
