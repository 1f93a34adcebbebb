import os

from setuptools import setup, find_packages

version_file = os.path.join(os.path.dirname(__file__), "vpx_conformance", "version.py")
with open(version_file, "r") as f:
    exec(f.read())

readme_file = os.path.join(os.path.dirname(__file__), "README.md")
with open(readme_file, "r") as f:
    long_description = f.read()

setup(
    name="vpx_conformance",
    version=__version__,  # noqa: F821 -- loaded by 'exec' above
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    description="Conformance and transform accuracy testing for VPx video codecs.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Telecommunications Industry",
        "Operating System :: POSIX :: Linux",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="vp8 vp9 vpx conformance dct",
    python_requires=">=3.8",
    install_requires=[
        "sentinels",
        "pillow",
        "numpy",
    ],
    extras_require={
        "tests": [
            "pytest",
            "mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "vpx-encode-check=vpx_conformance.scripts.vpx_encode_check:main",
            "vpx-transform-check=vpx_conformance.scripts.vpx_transform_check:main",
            "vpx-frame-compare=vpx_conformance.scripts.vpx_frame_compare:main",
        ],
    },
)
