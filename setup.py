from setuptools import find_packages, setup

README = ""
CHANGES = ""

requires = [
    "fastapi",
    "starlette",
    "uvicorn",
    "jinja2",
    "itsdangerous",
    "python-multipart",
    "vtjson",
]

tests_require = [
    "pytest",
    "httpx",
]

setup(
    name="snippetbox-server",
    version="0.1",
    description="snippetbox-server",
    long_description=README + "\n\n" + CHANGES,
    classifiers=[
        "Programming Language :: Python",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    author="",
    author_email="",
    url="",
    keywords="web fastapi starlette csrf",
    packages=find_packages(exclude=["tests"]),
    include_package_data=True,
    package_data={
        "snippetbox": [
            "templates/*.j2",
            "templates/errors/*.j2",
            "templates/layouts/*.j2",
            "static/css/*.css",
        ],
    },
    zip_safe=False,
    python_requires=">=3.11",
    install_requires=requires,
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": [
            "snippetbox = snippetbox.app:main",
        ],
    },
)
