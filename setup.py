from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="kpi-dashboard-engine",
    version="1.0.0",
    author="Tech Lead",
    description="Schema inference, cached KPI aggregation and size-bounded chart data for business dashboards.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Office/Business",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.109.0",
        "uvicorn[standard]>=0.27.0",
        "pandas>=2.2.0",
        "numpy>=1.26.0",
        "plotly>=5.18.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.3",
        "pydantic-settings>=2.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.4",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "kpi-dashboard=kpi_dashboard.main:start",
        ],
    },
)
