#!/usr/bin/env python3
"""
Cart Engagement Runner
======================

Run the cart engagement API in different modes.

Usage:
    python run_app.py                    # Development mode with auto-reload (default)
    python run_app.py --mode prod        # Production mode
    python run_app.py --port 8001        # Custom port
    python run_app.py --host 127.0.0.1   # Custom host
"""

import argparse
import os
import sys

def print_banner():
    """Print application banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║                 🛒 Cart Engagement API                ║
║         Saved carts, alerts and cart recovery         ║
╚═══════════════════════════════════════════════════════╝
    """
    print(banner)

def check_environment():
    """Report which configuration source will be used"""
    print("\n🔍 Checking environment...")
    
    if os.path.exists(".env"):
        print("✅ .env file found")
    else:
        print("⚠️  .env file not found, using defaults")

def run_app(host="0.0.0.0", port=8000, reload=True, log_level="info"):
    """Run the FastAPI application"""
    print(f"\n🚀 Starting Cart Engagement API on {host}:{port}")
    print(f"📖 API Docs: http://{host}:{port}/api/docs")
    print("\n" + "="*50)
    
    import uvicorn
    try:
        uvicorn.run(
            "cart_engagement.main:app",
            host=host,
            port=port,
            reload=reload,
            log_level=log_level
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")

def main():
    parser = argparse.ArgumentParser(
        description="Cart Engagement Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_app.py                      # Development server on port 8000
  python run_app.py --port 8001          # Custom port
  python run_app.py --mode prod          # Production mode
        """
    )
    
    parser.add_argument(
        "--mode", 
        choices=["dev", "prod"], 
        default="dev",
        help="Server mode (default: dev)"
    )
    parser.add_argument(
        "--host", 
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", 
        type=int, 
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--no-reload", 
        action="store_true",
        help="Disable auto-reload"
    )
    
    args = parser.parse_args()
    
    print_banner()
    check_environment()
    
    # Stores and scheduler are in-process; uvicorn runs one worker
    reload = not args.no_reload and args.mode != "prod"
    log_level = "info" if args.mode == "dev" else "warning"
    run_app(args.host, args.port, reload, log_level)
    
    return 0

if __name__ == "__main__":
    try:
        exit_code = main()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Unexpected error: {e}")
        sys.exit(1)
