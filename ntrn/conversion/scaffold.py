"""ExpoScaffolder: the empty Expo project that converted files are written into."""

from __future__ import annotations

import json
import os
import re
import shutil
from pathlib import Path
from typing import Any

import structlog

log = structlog.get_logger("ntrn.conversion")

PROJECT_DIRECTORIES = (
    "src/screens",
    "src/components",
    "src/navigation",
    "src/hooks",
    "src/utils",
    "src/services",
    "src/api",
    "src/contexts",
    "src/types",
    "src/constants",
    "assets/images",
    "assets/fonts",
)

EXPO_MAIN = "expo/AppEntry.js"

EXPO_SCRIPTS = {
    "start": "expo start",
    "android": "expo start --android",
    "ios": "expo start --ios",
    "web": "expo start --web",
    "type-check": "tsc --noEmit",
}

EXPO_DEPENDENCIES = {
    "expo": "~53.0.12",
    "react": "19.0.0",
    "react-native": "0.79.0",
    "@react-navigation/native": "^7.0.0",
    "@react-navigation/native-stack": "^7.0.0",
    "@react-navigation/bottom-tabs": "^7.0.0",
    "react-native-screens": "~4.0.0",
    "react-native-safe-area-context": "~4.12.0",
    "@react-native-async-storage/async-storage": "~2.1.0",
    "react-native-gesture-handler": "~2.20.0",
    "expo-status-bar": "~2.0.0",
    "expo-font": "~13.0.0",
    "expo-splash-screen": "~1.0.0",
}

EXPO_DEV_DEPENDENCIES = {
    "@babel/core": "^7.25.0",
    "@types/react": "~19.0.0",
    "typescript": "~5.8.3",
}

NATIVEWIND_DEPENDENCIES = {
    "nativewind": "^4.1.0",
    "tailwindcss": "^3.4.0",
}

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp"}
FONT_EXTENSIONS = {".ttf", ".otf", ".woff", ".woff2"}

# Markers the navigation updater anchors on
SCREEN_TYPES_MARKER = "  // Add your screen types here"
SCREEN_IMPORTS_MARKER = "// Screen imports"
HOME_SCREEN_IMPORT = "import { HomeScreen } from '../screens/HomeScreen';"
_HOME_IMPORT_RE = re.compile(
    r"^import [^\n]*\bHomeScreen\b[^\n]*from '\.\./screens/HomeScreen';$", re.MULTILINE
)
SCREENS_MARKER = "      {/* Add more screens here */}"

APP_TSX = """\
import React from 'react';
import { StatusBar } from 'expo-status-bar';
import { NavigationContainer } from '@react-navigation/native';
import { SafeAreaProvider } from 'react-native-safe-area-context';
import { GestureHandlerRootView } from 'react-native-gesture-handler';
import { AppNavigator } from './src/navigation/AppNavigator';
import { AppProviders } from './src/contexts/AppProviders';

export default function App(): JSX.Element {
  return (
    <GestureHandlerRootView style={{ flex: 1 }}>
      <SafeAreaProvider>
        <AppProviders>
          <NavigationContainer>
            <AppNavigator />
            <StatusBar style="auto" />
          </NavigationContainer>
        </AppProviders>
      </SafeAreaProvider>
    </GestureHandlerRootView>
  );
}
"""

APP_PROVIDERS_TSX = """\
import React from 'react';

type Props = { children: React.ReactNode };

// Wrap converted context providers around the app here.
export function AppProviders({ children }: Props): JSX.Element {
  return <>{children}</>;
}
"""

NAVIGATION_TYPES_TS = f"""\
import type {{ NativeStackScreenProps }} from '@react-navigation/native-stack';

export type RootStackParamList = {{
  Home: undefined;
{SCREEN_TYPES_MARKER}
}};

export type RootStackScreenProps<Screen extends keyof RootStackParamList> =
  NativeStackScreenProps<RootStackParamList, Screen>;

declare global {{
  namespace ReactNavigation {{
    interface RootParamList extends RootStackParamList {{}}
  }}
}}
"""

APP_NAVIGATOR_TSX = f"""\
import React from 'react';
import {{ createNativeStackNavigator }} from '@react-navigation/native-stack';
import type {{ RootStackParamList }} from '../types/navigation';
{HOME_SCREEN_IMPORT}
{SCREEN_IMPORTS_MARKER}

const Stack = createNativeStackNavigator<RootStackParamList>();

export function AppNavigator(): JSX.Element {{
  return (
    <Stack.Navigator initialRouteName="Home">
      <Stack.Screen name="Home" component={{HomeScreen}} options={{{{ title: 'Home' }}}} />
{SCREENS_MARKER}
    </Stack.Navigator>
  );
}}
"""

HOME_SCREEN_TSX = """\
import React from 'react';
import { View, Text, StyleSheet } from 'react-native';
import type { RootStackScreenProps } from '../types/navigation';

type Props = RootStackScreenProps<'Home'>;

export function HomeScreen(_props: Props): JSX.Element {
  return (
    <View style={styles.container}>
      <Text style={styles.title}>Welcome</Text>
      <Text style={styles.subtitle}>Converted from Next.js by ntrn</Text>
    </View>
  );
}

const styles = StyleSheet.create({
  container: {
    flex: 1,
    justifyContent: 'center',
    alignItems: 'center',
    padding: 16,
    backgroundColor: '#ffffff',
  },
  title: {
    fontSize: 24,
    fontWeight: 'bold',
    marginBottom: 8,
    color: '#333',
  },
  subtitle: {
    fontSize: 16,
    color: '#666',
  },
});
"""

BABEL_CONFIG_JS = """\
module.exports = function (api) {
  api.cache(true);
  return {
    presets: ['babel-preset-expo'],
  };
};
"""

GITIGNORE = """\
node_modules/
.expo/
dist/
web-build/
*.backup
expo-env.d.ts
"""


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower()) or "app"


class ExpoScaffolder:
    """Create the directory tree and boilerplate of an Expo TypeScript app."""

    def __init__(self, output_path: str | os.PathLike[str], *, styling: str = "stylesheet") -> None:
        self.output_path = Path(output_path)
        self.styling = styling
        self.app_name = self.output_path.name or "app"

    def create(self, source_path: str | os.PathLike[str] | None = None) -> list[str]:
        """Write the project. Returns the relative paths of the files created."""
        for directory in PROJECT_DIRECTORIES:
            (self.output_path / directory).mkdir(parents=True, exist_ok=True)

        written = []
        for rel, content in self.files().items():
            self._write(rel, content)
            written.append(rel)
        if source_path is not None:
            written.extend(self.copy_assets(Path(source_path)))
        log.info("scaffold.created", output=str(self.output_path), files=len(written))
        return written

    def files(self) -> dict[str, str]:
        return {
            "package.json": _json(self.package_json()),
            "tsconfig.json": _json(self.tsconfig()),
            "app.json": _json(self.app_json()),
            "babel.config.js": BABEL_CONFIG_JS,
            ".gitignore": GITIGNORE,
            "App.tsx": APP_TSX,
            "src/contexts/AppProviders.tsx": APP_PROVIDERS_TSX,
            "src/types/navigation.ts": NAVIGATION_TYPES_TS,
            "src/navigation/AppNavigator.tsx": APP_NAVIGATOR_TSX,
            "src/screens/HomeScreen.tsx": HOME_SCREEN_TSX,
        }

    def package_json(self) -> dict[str, Any]:
        dependencies = dict(EXPO_DEPENDENCIES)
        if self.styling == "nativewind":
            dependencies.update(NATIVEWIND_DEPENDENCIES)
        return {
            "name": slugify(self.app_name),
            "version": "1.0.0",
            "main": EXPO_MAIN,
            "scripts": dict(EXPO_SCRIPTS),
            "dependencies": dependencies,
            "devDependencies": dict(EXPO_DEV_DEPENDENCIES),
            "private": True,
        }

    def tsconfig(self) -> dict[str, Any]:
        return {
            "extends": "expo/tsconfig.base",
            "compilerOptions": {
                "strict": True,
                "jsx": "react-native",
                "skipLibCheck": True,
                "resolveJsonModule": True,
                "baseUrl": ".",
                "paths": {
                    "@/*": ["src/*"],
                    "@/components/*": ["src/components/*"],
                    "@/screens/*": ["src/screens/*"],
                    "@/services/*": ["src/services/*"],
                    "@/contexts/*": ["src/contexts/*"],
                    "@/types/*": ["src/types/*"],
                },
            },
            "include": ["**/*.ts", "**/*.tsx"],
            "exclude": ["node_modules"],
        }

    def app_json(self) -> dict[str, Any]:
        slug = slugify(self.app_name)
        return {
            "expo": {
                "name": self.app_name,
                "slug": slug,
                "version": "1.0.0",
                "orientation": "portrait",
                "userInterfaceStyle": "light",
                "newArchEnabled": True,
                "assetBundlePatterns": ["**/*"],
                "ios": {"supportsTablet": True, "bundleIdentifier": f"com.{slug}.app"},
                "android": {"package": f"com.{slug}.app"},
                "web": {"bundler": "metro"},
            }
        }

    def copy_assets(self, source_path: Path) -> list[str]:
        """Copy images and fonts from the Next.js ``public/`` directory."""
        public = source_path / "public"
        if not public.is_dir():
            return []
        copied = []
        for dirpath, _dirnames, filenames in os.walk(public):
            for name in sorted(filenames):
                src = Path(dirpath) / name
                ext = src.suffix.lower()
                if ext in IMAGE_EXTENSIONS:
                    bucket = "assets/images"
                elif ext in FONT_EXTENSIONS:
                    bucket = "assets/fonts"
                else:
                    continue
                rel = src.relative_to(public).as_posix()
                target = self.output_path / bucket / rel
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(src, target)
                except OSError as exc:
                    log.warning("scaffold.asset_copy_failed", path=rel, error=str(exc))
                    continue
                copied.append(f"{bucket}/{rel}")
        return copied

    def _write(self, rel: str, content: str) -> None:
        path = self.output_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2) + "\n"


def register_screen(output_path: str | os.PathLike[str], screen_file: str) -> bool:
    """Add a screen to the navigation types and the stack navigator.

    *screen_file* is the project-relative path of the screen, for example
    ``src/screens/AboutScreen.tsx``. Returns ``True`` if anything changed.
    """
    output_path = Path(output_path)
    screen_name = Path(screen_file).stem
    if screen_name == "HomeScreen":
        return _refresh_home_import(output_path)
    route_name = screen_name[: -len("Screen")] if screen_name.endswith("Screen") else screen_name
    changed = False

    types_path = output_path / "src/types/navigation.ts"
    if types_path.is_file():
        content = types_path.read_text(encoding="utf-8")
        if f"  {route_name}:" not in content and SCREEN_TYPES_MARKER in content:
            content = content.replace(
                SCREEN_TYPES_MARKER, f"  {route_name}: undefined;\n{SCREEN_TYPES_MARKER}", 1
            )
            types_path.write_text(content, encoding="utf-8")
            changed = True

    navigator_path = output_path / "src/navigation/AppNavigator.tsx"
    if navigator_path.is_file():
        content = navigator_path.read_text(encoding="utf-8")
        original = content
        import_line = _screen_import(output_path / screen_file, screen_name)
        if import_line not in content and SCREEN_IMPORTS_MARKER in content:
            content = content.replace(
                SCREEN_IMPORTS_MARKER, f"{import_line}\n{SCREEN_IMPORTS_MARKER}", 1
            )
        if f'name="{route_name}"' not in content and SCREENS_MARKER in content:
            screen_line = (
                f'      <Stack.Screen name="{route_name}" component={{{screen_name}}} '
                f"options={{{{ title: '{route_name}' }}}} />"
            )
            content = content.replace(SCREENS_MARKER, f"{screen_line}\n{SCREENS_MARKER}", 1)
        if content != original:
            navigator_path.write_text(content, encoding="utf-8")
            changed = True

    if changed:
        log.info("navigation.screen_registered", screen=screen_name, route=route_name)
    return changed


def _screen_import(path: Path, screen_name: str) -> str:
    named = f"import {{ {screen_name} }} from '../screens/{screen_name}';"
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return named
    if re.search(rf"export\s+(?:function|const|class)\s+{screen_name}\b", content):
        return named
    if "export default" in content:
        return f"import {screen_name} from '../screens/{screen_name}';"
    return named


def _refresh_home_import(output_path: Path) -> bool:
    """Match the navigator's HomeScreen import to how the converted screen exports it."""
    navigator_path = output_path / "src/navigation/AppNavigator.tsx"
    if not navigator_path.is_file():
        return False
    content = navigator_path.read_text(encoding="utf-8")
    import_line = _screen_import(output_path / "src/screens/HomeScreen.tsx", "HomeScreen")
    updated = _HOME_IMPORT_RE.sub(import_line, content, count=1)
    if updated == content:
        return False
    navigator_path.write_text(updated, encoding="utf-8")
    log.info("navigation.home_import_updated", import_line=import_line)
    return True
