from setuptools import setup


setup(
    name="refund-desk",
    version="0.1.0",
    description="Local shipping refund reconciliation for order CSV exports",
    packages=["refund_desk"],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "refund-desk=refund_desk.cli:main",
        ]
    },
)
