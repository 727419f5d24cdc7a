"""Allow running as: python -m requirements_portal"""

from requirements_portal.main import main

if __name__ == "__main__":
    main()
