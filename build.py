import sys
import subprocess


def main():
    print("Building multidatasetlib...")
    try:
        subprocess.check_call([sys.executable, "-m", "flit", "build", "--no-use-vcs"])
    except subprocess.CalledProcessError as error:
        print(f"Building multidatasetlib failed: {error}")
        sys.exit(error.returncode)
    else:
        print("Wheel and sdist written to dist/.")


if __name__ == "__main__":
    main()
