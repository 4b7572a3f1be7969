from setuptools import find_packages, setup

setup(
    name="takeout-photo-sync",
    version="0.3.0",
    description="Google Takeout 相簿與 macOS Photos 相片庫的對帳與匯入工具",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "Pillow",
        "piexif",
        "pillow-heif",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "takeout-photo-sync=takeout_photo_sync.main:main",
        ],
    },
)
