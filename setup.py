import re

from setuptools import find_packages, setup


with open("pyhalo/_version.py", "rb") as fh:
    init_text = fh.read().decode()
    VERSION = re.search(r"__version__ = \"(.*?)\"", init_text).group(1)


runtime_deps = [
    "numpy",
    "wgpu>=0.19",
    "pylinalg>=0.6",
    "Jinja2",
    "rendercanvas>=2.0",
    "glfw",
    "watchfiles",
]

extras_require = {
    "dev": [
        "ruff",
        "pytest",
        "setuptools",
        "wheel",
        "twine",
    ],
}


setup(
    name="pyhalo",
    version=VERSION,
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "pyhalo.shader.wgsl": ["*.wgsl"],
    },
    python_requires=">=3.9.0",
    install_requires=runtime_deps,
    extras_require=extras_require,
    license="BSD 2-Clause",
    description="A live WGSL fragment shader playground based on wgpu",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    zip_safe=True,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Graphics",
    ],
    entry_points={
        "console_scripts": [
            "pyhalo = pyhalo.__main__:main",
        ],
    },
)
