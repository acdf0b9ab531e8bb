from setuptools import setup, find_packages

setup(
    name="mqtt-log-appender",
    version="1.0.1",
    description="Logging handler that publishes log records to an MQTT topic",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "paho-mqtt>=2.0.0",  # VERSION2 callback API
        "pydantic>=2.0.0",  # AppenderConfig validation
        "pyyaml>=5.4",  # logging config files
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Logging",
    ],
    python_requires=">=3.8",
)
