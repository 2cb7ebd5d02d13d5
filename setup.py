# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from setuptools import setup, find_packages

NAME = "tubeio"
VERSION = "1.0"


setup(
    name=NAME,
    version=VERSION,
    packages=find_packages(exclude=("tests.*", "tests")),
    package_data={"tubeio": ["*.yaml"]},
    python_requires=">=3.10",

    license='Apache 2.0',
    description='Buffered, timeout aware tubes for scripting interactive processes.',
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    install_requires=[
        'blinker>=1.7',
        'confuse',
        'curio',
        'psutil',
        'pyyaml',
    ],
    extras_require={
        "test": ['pytest'],
    },
    classifiers=[
        "Programming Language :: Python",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Testing",
    ],
)
