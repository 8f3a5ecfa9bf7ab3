[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qidentity"
version = "0.1.0"
description = "Lattice-style key encapsulation and signatures, key management, audit logging, memory canaries and identity records"
requires-python = ">=3.10"
keywords = ["kyber", "dilithium", "lattice", "ntt", "post-quantum", "identity", "audit", "aes-gcm"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["qidentity"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
