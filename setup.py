from setuptools import setup, find_packages
# define VERSION
try:
    # when running build
    # use from dbkeeper package
    from dbkeeper.core.version import get_version

    VERSION = get_version()
except Exception:
    # when installed --editable
    # just use this
    VERSION = '0.0.0-dev.0'

# read description from file
f = open('README.md', 'r')
LONG_DESCRIPTION = f.read()
f.close()

# run setup
setup(
    name='dbkeeper',
    version=VERSION,
    description='The dbkeeper CLI cleans up and optimizes content databases.',
    long_description=LONG_DESCRIPTION,
    long_description_content_type='text/markdown',
    url='about:none',
    license='MIT',
    packages=find_packages(exclude=['ez_setup', 'tests*']),
    include_package_data=True,
    python_requires='>=3.8',
    install_requires=[
        'cement>=3.0.10',
        'colorlog',
        'pyyaml',
        'tabulate',
        'diskcache',
        'sqlalchemy>=2.0',
    ],
    extras_require={
        'mysql': ['pymysql'],
        'postgres': ['psycopg[binary]'],
        'test': ['pytest'],
    },
    entry_points="""
        [console_scripts]
        dbkeeper = dbkeeper.main:main
    """,
)
