import argparse
import getpass

from storefront.services.users import ADMIN_ROLES, create_admin


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Create a back-office administrator account")
    ap.add_argument('--name', required=True)
    ap.add_argument('--email', required=True)
    ap.add_argument('--role', default='admin', choices=ADMIN_ROLES)
    ap.add_argument('--password', help='Prompted for when omitted')
    args = ap.parse_args()
    password = args.password or getpass.getpass("Password: ")
    admin = create_admin(args.name, args.email, password, role=args.role)
    print(f"Created {admin['role']} {admin['email']} ({admin['id']})")
